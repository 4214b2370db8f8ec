"""
evrballot/electrumx/connection.py

Newline-delimited JSON-RPC over SSL/TCP to a single ElectrumX server.
"""

import json
import logging
import socket
import ssl
from typing import Optional

logger = logging.getLogger("evrballot.electrumx.connection")


class ElectrumXConnection:
    """
    One socket to one ElectrumX server.

    Supports SSL (port 50002) and plain TCP (port 50001).
    """

    DEFAULT_TIMEOUT = 30  # seconds
    BUFFER_SIZE = 4096

    def __init__(
        self,
        host: str,
        port: int = 50002,
        use_ssl: bool = True,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        self.host = host
        self.port = port
        self.use_ssl = use_ssl
        self.timeout = timeout

        self._stream: Optional[socket.socket] = None
        self._connected = False
        self._pending = ""

    @property
    def connected(self) -> bool:
        return self._connected

    def connect(self) -> bool:
        """
        Open the socket.

        Returns:
            True if connection successful
        """
        try:
            sock = socket.create_connection((self.host, self.port), timeout=self.timeout)
            if self.use_ssl:
                # ElectrumX operators commonly run self-signed certificates
                context = ssl.create_default_context()
                context.check_hostname = False
                context.verify_mode = ssl.CERT_NONE
                sock = context.wrap_socket(sock, server_hostname=self.host)
            self._stream = sock
            self._connected = True
            logger.debug(f"Connected to {self.host}:{self.port} (ssl={self.use_ssl})")
            return True
        except (OSError, ssl.SSLError) as e:
            logger.error(f"Connection failed to {self.host}:{self.port}: {e}")
            self.close()
            return False

    def close(self) -> None:
        self._connected = False
        if self._stream is not None:
            try:
                self._stream.close()
            except OSError:
                pass
            self._stream = None
        self._pending = ""

    def send(self, request: dict) -> bool:
        """Write one JSON-RPC request line."""
        if not self._connected:
            return False
        try:
            self._stream.sendall((json.dumps(request) + "\n").encode("utf-8"))
            return True
        except OSError as e:
            logger.error(f"Send failed to {self.host}:{self.port}: {e}")
            self.close()
            return False

    def receive(self) -> Optional[dict]:
        """
        Read one JSON-RPC response line.

        Any failure drops the connection: a reply that arrives after a
        timeout would otherwise be read as the answer to the next request.

        Returns:
            Parsed response, or None if no complete reply could be read
        """
        if not self._connected:
            return None
        try:
            line = self._read_line()
        except socket.timeout:
            logger.warning(f"Receive timeout from {self.host}:{self.port}, dropping connection")
            self.close()
            return None
        except OSError as e:
            logger.error(f"Receive failed from {self.host}:{self.port}: {e}")
            self.close()
            return None

        if line is None:
            logger.warning(f"{self.host}:{self.port} closed the connection")
            self.close()
            return None
        try:
            return json.loads(line)
        except json.JSONDecodeError as e:
            logger.error(f"Invalid JSON from {self.host}:{self.port}: {e}")
            self.close()
            return None

    def _read_line(self) -> Optional[str]:
        """Block until a full line is buffered. None if the peer closed."""
        while "\n" not in self._pending:
            chunk = self._stream.recv(self.BUFFER_SIZE)
            if not chunk:
                return None
            self._pending += chunk.decode("utf-8")
        line, self._pending = self._pending.split("\n", 1)
        return line

    def __enter__(self) -> "ElectrumXConnection":
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
