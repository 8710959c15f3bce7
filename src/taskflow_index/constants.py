CONFIG_FILE = "taskflow.yaml"
CONFIG_SECTION = "index"

DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_REINDEX_ON_OVERWRITE = True
DEFAULT_STRICT_DEPENDENCY_ORDER = False

VALID_LOG_LEVELS = {"TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"}
