from .config import *  # noqa: F401,F403
from .config import env_flag

DEBUG = True

AUTO_INIT_DB = env_flag("AUTO_INIT_DB", "1")
