"""Exit code contract between the wrapper process and the executor."""

EXIT_SUCCESS = 0
EXIT_AGENT_ERROR = 1
EXIT_INVALID_ARGS = 2
EXIT_TIMEOUT = 124
EXIT_BINARY_NOT_FOUND = 127

AGENT_TIMEOUT_SECONDS = 300
