"""Call orchestration services.

``factory.build_services`` wires the hardware and model backends and is
imported from its module directly.
"""

from .bundle import ServiceBundle
from .settings import CallSettings
from .turn_controller import TurnController
from .call_session import CallSession
from .warmup import warm_up

__all__ = [
    'ServiceBundle',
    'CallSettings',
    'TurnController',
    'CallSession',
    'warm_up',
]
