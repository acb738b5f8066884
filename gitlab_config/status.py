class ExitCodes:
    SUCCESS = 0
    # a command failed, e.g., GitLab rejected a change
    ERROR = 2
