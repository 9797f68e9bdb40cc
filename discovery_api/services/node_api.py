"""
Client for the proxy API running inside the discovery image on each node.

The image listens on ``<scheme>://<ip>:<port>`` and accepts power and
inventory requests. All transport failures surface as NodeAPIError.
"""
import logging
from typing import Any, Dict, Optional

import requests

from discovery_api.core.config import settings
from discovery_api.core.exceptions import NodeAPIError

logger = logging.getLogger(__name__)


class NodeClient:
    """Thin requests wrapper bound to one node."""

    def __init__(self, ip: str, session: Optional[requests.Session] = None):
        if not ip:
            raise NodeAPIError("Host has no IP address, unable to contact the discovery image")
        self.ip = ip
        self.base_url = f"{settings.DISCOVERY_NODE_SCHEME}://{ip}:{settings.DISCOVERY_NODE_PORT}"
        self.session = session or requests.Session()

    def request(self, method: str, path: str, payload: Optional[Dict[str, Any]] = None) -> requests.Response:
        url = f"{self.base_url}{path}"
        logger.debug(f"Node API {method} {url}")
        try:
            response = self.session.request(
                method,
                url,
                json=payload,
                timeout=settings.DISCOVERY_NODE_TIMEOUT,
                verify=settings.DISCOVERY_NODE_VERIFY_SSL,
            )
            response.raise_for_status()
        except requests.exceptions.HTTPError as e:
            status_code = e.response.status_code if e.response is not None else "?"
            raise NodeAPIError(f"Node {self.ip} returned HTTP {status_code} for {method} {path}") from e
        except requests.exceptions.RequestException as e:
            raise NodeAPIError(f"Unable to reach node {self.ip}: {e}") from e
        return response


class PowerService:
    """Power actions on a discovered node."""

    def __init__(self, ip: str, client: Optional[NodeClient] = None):
        self.client = client or NodeClient(ip)

    def reboot(self) -> bool:
        self.client.request("PUT", "/power/reboot")
        logger.info(f"Reboot requested for node {self.client.ip}")
        return True

    def kexec(self, payload: Dict[str, Any]) -> bool:
        """
        Boot directly into the installer kernel.

        Args:
            payload: ``{"kernel": url, "initram": url, "append": str}``
        """
        self.client.request("PUT", "/power/kexec", payload)
        logger.info(f"Kexec requested for node {self.client.ip} (kernel={payload.get('kernel')})")
        return True


class InventoryService:
    """Inventory queries on a discovered node."""

    def __init__(self, ip: str, client: Optional[NodeClient] = None):
        self.client = client or NodeClient(ip)

    def facter(self) -> Dict[str, Any]:
        response = self.client.request("GET", "/inventory/facter")
        try:
            data = response.json()
        except ValueError as e:
            raise NodeAPIError(f"Node {self.client.ip} returned invalid facts") from e
        if not isinstance(data, dict):
            raise NodeAPIError(f"Node {self.client.ip} returned invalid facts")
        # older images wrap the payload
        facts = data.get("facts")
        return facts if isinstance(facts, dict) else data
