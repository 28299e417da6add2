from __future__ import annotations

import contextlib
import sys
from collections.abc import Callable
from typing import Any

import servicemanager
import win32event
import win32service
import win32serviceutil

from node_daemon.runtime.utils import run_guarded

from .errors import InstallFailure, ServiceError, StartFailure

_CALLBACKS: dict[str, Callable[[], Any] | None] = {"start": None, "stop": None}


class WindowsServiceBase(win32serviceutil.ServiceFramework):
    _svc_name_ = "NodeDaemonService"
    _svc_display_name_ = "Node Daemon"
    _svc_description_ = "Node Daemon background service"

    def __init__(self, args):
        super().__init__(args)
        self.hWaitStop = win32event.CreateEvent(None, 0, 0, None)
        self._on_start = _CALLBACKS["start"]
        self._on_stop = _CALLBACKS["stop"]

    def SvcStop(self):
        self.ReportServiceStatus(win32service.SERVICE_STOP_PENDING)
        if self._on_stop:
            run_guarded(self._on_stop, "Service stop callback")
        win32event.SetEvent(self.hWaitStop)

    def SvcDoRun(self):
        servicemanager.LogMsg(
            servicemanager.EVENTLOG_INFORMATION_TYPE,
            servicemanager.PYS_SERVICE_STARTED,
            (self._svc_name_, ""),
        )
        # the start callback blocks until the daemon exits
        if self._on_start:
            run_guarded(self._on_start, "Service start callback")
        else:
            win32event.WaitForSingleObject(self.hWaitStop, win32event.INFINITE)

    @classmethod
    def configure(
        cls,
        svc_name: str,
        display_name: str | None = None,
        description: str | None = None,
        on_start: Callable[[], Any] | None = None,
        on_stop: Callable[[], Any] | None = None,
    ) -> type[WindowsServiceBase]:
        cls._svc_name_ = svc_name
        cls._svc_display_name_ = display_name or svc_name
        cls._svc_description_ = description or ""
        _CALLBACKS.update({"start": on_start, "stop": on_stop})
        return cls


class WindowsServiceManager:
    @staticmethod
    def install(
        service_name: str,
        arguments: str,
        display_name: str | None = None,
        description: str | None = None,
        start_type: int = win32service.SERVICE_AUTO_START,
    ) -> None:
        try:
            win32serviceutil.InstallService(
                pythonClassString=f"{__name__}.WindowsServiceBase",
                serviceName=service_name,
                displayName=display_name or service_name,
                startType=start_type,
                exeName=sys.executable,
                exeArgs=arguments,
                description=description or "",
            )
        except Exception as err:
            raise InstallFailure(f"failed to install service '{service_name}': {err}") from err

    @staticmethod
    def start(service_name: str) -> None:
        try:
            win32serviceutil.StartService(service_name)
        except Exception as err:
            raise StartFailure(f"failed to start service '{service_name}': {err}") from err

    @staticmethod
    def remove(service_name: str) -> None:
        with contextlib.suppress(Exception):
            win32serviceutil.StopService(service_name)
        try:
            win32serviceutil.RemoveService(service_name)
        except Exception as err:
            raise ServiceError(f"failed to remove service '{service_name}': {err}") from err

    @staticmethod
    def exists(service_name: str) -> bool:
        try:
            win32serviceutil.QueryServiceStatus(service_name)
        except Exception:
            return False
        else:
            return True

    @staticmethod
    def run_as_service(
        service_name: str,
        on_start: Callable[[], Any],
        on_stop: Callable[[], Any],
        display_name: str | None = None,
    ) -> None:
        svc_cls = WindowsServiceBase.configure(
            service_name,
            display_name=display_name,
            on_start=on_start,
            on_stop=on_stop,
        )
        servicemanager.Initialize(service_name, None)
        servicemanager.PrepareToHostSingle(svc_cls)
        servicemanager.StartServiceCtrlDispatcher()
