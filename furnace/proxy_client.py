"""
Furnace Proxy Client - Talk to the furnace proxy that fronts per-pod controllers.

The proxy exposes the registry of profiling-capable pods and forwards
start/stop/status/chart calls to the controller running next to a pod.
"""
from pathlib import Path
from typing import List, Optional
from urllib.parse import urlencode

import requests
from pydantic import ValidationError

from .config import get_settings
from .models.schemas import RecordingOptions, Target
from .utils.logger import get_logger

PROXY_PREFIX = "/proxy"

logger = get_logger(__name__)


def target_params(target: Target) -> dict:
    return {"namespace": target.namespace, "pod": target.name}


def build_chart_url(base_url: str, target: Target, epoch: int, download: bool = False) -> str:
    """Build a cache-busted chart reference without touching the network.

    ``epoch`` only defeats caching of a previous chart for the same pod.
    """
    params = target_params(target)
    params["time"] = str(epoch)
    if download:
        params["download"] = "true"
    return f"{base_url.rstrip('/')}{PROXY_PREFIX}/chart?{urlencode(params)}"


def chart_filename(target: Target) -> str:
    """Attachment name the proxy uses for downloaded charts."""
    return f"{target.namespace}_{target.name}.svg"


class ProxyClient:
    """
    Client for the furnace proxy.

    Provides methods to:
    - List registered pods
    - Start and stop a recording on a pod
    - Read the pipeline status of a pod
    - Build chart URLs and download rendered charts

    Errors are not swallowed here: transport failures raise
    ``requests.RequestException`` and non-2xx responses raise ``HTTPError``.
    """

    def __init__(self, base_url: Optional[str] = None, timeout: Optional[float] = None):
        """
        Initialize the proxy client.

        Args:
            base_url: Proxy root, e.g. ``http://furnace:8080`` (defaults to FURNACE_URL)
            timeout: Per-request timeout in seconds (defaults to FURNACE_REQUEST_TIMEOUT)
        """
        settings = get_settings()
        self.base_url = (base_url or settings.furnace_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.request_timeout

    def _request(self, method: str, endpoint: str, **kwargs) -> requests.Response:
        """
        Make a request against the proxy.

        Args:
            method: HTTP method (GET, POST)
            endpoint: Path below ``/proxy``
            **kwargs: Additional arguments for requests

        Returns:
            The successful response
        """
        url = f"{self.base_url}{PROXY_PREFIX}{endpoint}"
        kwargs.setdefault("timeout", self.timeout)
        response = requests.request(method, url, **kwargs)
        response.raise_for_status()
        return response

    def list_registered(self) -> List[Target]:
        """
        List pods currently registered with the proxy.

        Entries that do not validate are skipped with a warning.
        """
        payload = self._request("GET", "/registered").json()
        if not isinstance(payload, list):
            raise ValueError(f"Unexpected registry payload: {type(payload).__name__}")

        targets: List[Target] = []
        for entry in payload:
            try:
                targets.append(Target.model_validate(entry))
            except ValidationError as exc:
                logger.warning("Skipping malformed registration %r: %s", entry, exc)
        return targets

    def start(self, target: Target) -> None:
        """Ask the pod's controller to begin ``perf record``."""
        self._request("POST", "/start", params=target_params(target))

    def stop(self, target: Target, options: RecordingOptions, width: int) -> None:
        """
        Stop recording and kick off script/collapse/render on the pod.

        Args:
            target: Pod being recorded
            options: Rendering options, read once at call time
            width: Chart width in pixels (0 lets the backend choose)
        """
        params = target_params(target)
        params["width"] = str(int(width))
        params.update(options.to_query())
        self._request("POST", "/stop", params=params)

    def status(self, target: Target) -> str:
        """Return the raw pipeline status label for a pod."""
        return self._request("GET", "/status", params=target_params(target)).text.strip()

    def chart_url(self, target: Target, epoch: int, download: bool = False) -> str:
        return build_chart_url(self.base_url, target, epoch, download=download)

    def download_chart(self, target: Target, epoch: int, dest_dir: Path) -> Path:
        """
        Download the rendered flamegraph SVG.

        Returns:
            Path of the written ``<namespace>_<pod>.svg`` file
        """
        params = target_params(target)
        params["time"] = str(epoch)
        params["download"] = "true"
        response = self._request("GET", "/chart", params=params)

        dest_dir = Path(dest_dir)
        dest_dir.mkdir(parents=True, exist_ok=True)
        path = dest_dir / chart_filename(target)
        path.write_bytes(response.content)
        logger.info(f"💾 Saved flamegraph for {target} to {path}")
        return path


def get_client() -> ProxyClient:
    """Convenience function to get a proxy client configured from the environment."""
    return ProxyClient()
