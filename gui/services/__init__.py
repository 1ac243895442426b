from .artifact_service import ArtifactPresenter, ArtifactReference, build_reference
from .clients import get_proxy_client
from .registry_service import TargetRegistry
from .session_controller import CHART_MARGIN, SessionController

__all__ = [
    "ArtifactPresenter",
    "ArtifactReference",
    "CHART_MARGIN",
    "SessionController",
    "TargetRegistry",
    "build_reference",
    "get_proxy_client",
]
