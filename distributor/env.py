import os
from typing import Optional

from dotenv import load_dotenv
from distributor.errors import MissingEnvironmentVariableException

load_dotenv()


def env_var(accessor: str, default: Optional[str] = None) -> str:
    """
    Attempt to fetch an environment variable and throw
    an error if not found and no default is given
    """
    var = os.environ.get(accessor)
    if not var:
        if default is not None:
            return default
        raise MissingEnvironmentVariableException(accessor)
    return var


class PATHS:
    DB = env_var("DISTRIBUTOR_DB_PATH", "distributor-db.json")
    CONFIG = env_var("DISTRIBUTOR_CONFIG", "distributor-conf.json")
    REPORTS = env_var("DISTRIBUTOR_REPORTS_DIR", "reports")
