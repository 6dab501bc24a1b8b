"""Infrastructure modules for the DCA executor"""

from .alerting import AlertService, AlertConfig  # noqa: F401
from .metrics import MetricsRecorder, CycleStats  # noqa: F401
from .control_server import ControlServer  # noqa: F401

__all__ = [
	"AlertService",
	"AlertConfig",
	"MetricsRecorder",
	"CycleStats",
	"ControlServer",
]
