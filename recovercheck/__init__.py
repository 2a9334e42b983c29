"""recovercheck: flags goroutines whose panics are never recovered."""

__version__ = "0.3.0"

from .analyzer import RecoverAnalyzer, analyze_source
from .models import Diagnostic, DiagnosticKind
from .table import RecoveryTable

__all__ = [
    "__version__",
    "Diagnostic",
    "DiagnosticKind",
    "RecoverAnalyzer",
    "RecoveryTable",
    "analyze_source",
]
