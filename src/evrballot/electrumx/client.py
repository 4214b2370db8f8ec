"""
evrballot/electrumx/client.py

ElectrumX JSON-RPC client, limited to what the block time source needs:
handshake and chain tip header.

One client owns one socket and is shared by every thread that reads the
clock, so each request/response pair is exchanged under a lock and the
response id must match the request id.
"""

import logging
import threading
from typing import Any, Dict, List, Optional, Tuple

from ..config import ELECTRUMX_SERVERS, ElectrumXConfig
from .connection import ElectrumXConnection

logger = logging.getLogger("evrballot.electrumx.client")

CLIENT_NAME = "evrballot"
PROTOCOL_VERSION = "1.10"


class ElectrumXError(Exception):
    """Exception raised for ElectrumX errors."""
    pass


class ElectrumXClient:
    """
    ElectrumX JSON-RPC client for Evrmore headers.

    Example:
        with ElectrumXClient() as client:
            tip = client.get_tip_header()
            print(tip["height"], tip["hex"])
    """

    def __init__(
        self,
        servers: Optional[List[Tuple[str, int]]] = None,
        use_ssl: bool = True,
        timeout: float = 30.0,
    ):
        self.servers = servers or list(ELECTRUMX_SERVERS)
        self.use_ssl = use_ssl
        self.timeout = timeout

        self._connection: Optional[ElectrumXConnection] = None
        self._request_id = 0
        self._server_version: Optional[str] = None
        self._lock = threading.RLock()

    @classmethod
    def from_config(cls, config: ElectrumXConfig) -> "ElectrumXClient":
        return cls(servers=config.servers, use_ssl=config.use_ssl, timeout=config.timeout)

    @property
    def connected(self) -> bool:
        return self._connection is not None and self._connection.connected

    def connect(self, server_index: int = 0) -> bool:
        """
        Connect to the first reachable server, starting at server_index.

        Returns:
            True if connected and handshake succeeded
        """
        with self._lock:
            for i in range(len(self.servers)):
                host, port = self.servers[(server_index + i) % len(self.servers)]
                logger.info(f"Connecting to ElectrumX server {host}:{port}...")

                self._connection = ElectrumXConnection(
                    host=host,
                    port=port,
                    use_ssl=self.use_ssl,
                    timeout=self.timeout,
                )
                if not self._connection.connect():
                    logger.warning(f"Failed to connect to {host}:{port}")
                    continue
                if self._handshake():
                    logger.info(f"Connected to {host}:{port} (version: {self._server_version})")
                    return True
                logger.warning(f"Handshake failed with {host}:{port}")
                self._connection.close()

            logger.error("Failed to connect to any ElectrumX server")
            return False

    def close(self) -> None:
        with self._lock:
            if self._connection:
                self._connection.close()
                self._connection = None
            self._server_version = None

    def _handshake(self) -> bool:
        try:
            result = self._call("server.version", CLIENT_NAME, PROTOCOL_VERSION)
        except ElectrumXError as e:
            logger.error(f"Handshake failed: {e}")
            return False
        if isinstance(result, list) and result:
            self._server_version = result[0]
            return True
        return False

    def _call(self, method: str, *params) -> Any:
        """
        Make a JSON-RPC call.

        A missing or mismatched reply drops the connection, so the next
        call starts on a clean stream.

        Raises:
            ElectrumXError: On communication or server error
        """
        with self._lock:
            if not self.connected:
                raise ElectrumXError("Not connected to server")

            self._request_id += 1
            request_id = self._request_id
            request = {
                "jsonrpc": "2.0",
                "id": request_id,
                "method": method,
                "params": list(params),
            }

            if not self._connection.send(request):
                raise ElectrumXError(f"Failed to send {method}")

            response = self._connection.receive()
            if response is None:
                raise ElectrumXError(f"No response to {method}")
            if response.get("id") != request_id:
                self._connection.close()
                raise ElectrumXError(
                    f"Response id {response.get('id')!r} does not match request {request_id}"
                )

        error = response.get("error")
        if error:
            msg = error.get("message", str(error)) if isinstance(error, dict) else str(error)
            raise ElectrumXError(f"Server error: {msg}")

        return response.get("result")

    def get_tip_header(self) -> Dict[str, Any]:
        """
        Get the current chain tip, connecting first if needed.

        Returns:
            Dict with 'height' and 'hex' (raw header)

        Raises:
            ElectrumXError: If no server is reachable or the reply has no header
        """
        with self._lock:
            if not self.connected and not self.connect():
                raise ElectrumXError("No ElectrumX server reachable")
            result = self._call("blockchain.headers.subscribe")
        if not isinstance(result, dict) or "hex" not in result:
            raise ElectrumXError(f"Unexpected headers.subscribe result: {result}")
        return result

    def __enter__(self) -> "ElectrumXClient":
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
