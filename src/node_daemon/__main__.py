from node_daemon.launcher import run

if __name__ == "__main__":
    run()
