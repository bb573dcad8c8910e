from .requests import *  # noqa: F401,F403
from .responses import *  # noqa: F401,F403
