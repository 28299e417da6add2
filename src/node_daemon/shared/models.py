from pydantic import BaseModel


class CommandRequest(BaseModel):
    command: list[str]


class CommandReply(BaseModel):
    accepted: bool
    output: str = ""
