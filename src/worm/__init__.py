"""
WORM - one session API over native Python, an external Python
interpreter, Go and C/C++, plus an embedded file container.

    from worm import WormRegistry, load_config

    with WormRegistry(load_config()) as registry:
        session = registry.create_session("demo")
        session.js.array(range(1, 11)).filter(lambda x: x % 2 == 0).map(lambda x: x * x).sum()
        session.cpp.math.sqrt(25).value
"""

from ._version import get_version
from .core.registry import HistoryRecord, Session, WormRegistry
from .adapters import AdapterResult, ResultStatus
from .container import ContainerStore
from .core.config import WormConfig, load_config
from .core.errors import WormError

__version__ = get_version()

__all__ = [
    "__version__",
    "AdapterResult",
    "ContainerStore",
    "HistoryRecord",
    "ResultStatus",
    "Session",
    "WormConfig",
    "WormError",
    "WormRegistry",
    "load_config",
]
