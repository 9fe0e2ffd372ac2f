"""Constants used in the project."""

from enum import Enum


class ExitCodes(Enum):
    """Exit codes for the program.

    Args:
        Enum (int): Exit codes for the program.
    """

    SUCCESS = 0
    FILE_ERROR = 1
    CONNECTION_ERROR = 2
    UNSATISFIED = 3
    RESOLUTION_ERROR = 4


class SearchMethod(Enum):
    """Version search probes, in the order they are consulted.

    Args:
        Enum (string): Probe kind names as used by include/exclude lists.
    """

    RUNTIME = "runtime"
    LOCAL = "local"
    REMOTE = "remote"
    MVNREPOSITORY = "mvnrepository"


class Constants:  # pylint: disable=too-few-public-methods
    """General constants used in the project.
    Data holder for configuration constants; not intended to provide behavior.
    """

    ROOT_NAMESPACE = "root"
    DEFAULT_TYPE = "jar"
    ARTIFACT_ATTRIBUTES = ("group", "id", "type", "classifier", "version")

    DEFAULT_REMOTE_REPOSITORY = "https://repo1.maven.org/maven2"
    MVNREPOSITORY_URL = "https://mvnrepository.com/artifact"
    METADATA_FILE = "maven-metadata.xml"
    LOCAL_REPOSITORY_ENV = ("M2_REPO", "local_repo")
    LOCAL_REPOSITORY_DEFAULT = "~/.m2/repository"
    SEARCH_ALL = "all"

    LOG_FORMAT = "[%(levelname)s] %(message)s"
    LOG_LEVEL_ENV = "ARTIFACTNS_LOG_LEVEL"
    REQUEST_TIMEOUT = 30  # Timeout in seconds for all HTTP requests
    HTTP_RETRY_MAX = 3
    HTTP_CACHE_TTL_SEC = 300
    USER_AGENT = "artifactns/0.1"
