"""Phone handoff links and QR rendering."""

import io
import ipaddress
import logging
import socket
from collections.abc import Callable
from dataclasses import dataclass
from urllib.parse import quote

import segno

from room_designer.domain.errors import HandoffAddressError

logger = logging.getLogger(__name__)

PHONE_UPLOAD_ROUTE = "/phone-upload"

# Any non-local address works; connecting a UDP socket sends no packets.
_PROBE_ADDRESS = ("10.254.254.254", 1)


def discover_lan_address() -> str | None:
    """Return the address of the interface used for outbound traffic."""
    try:
        with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as probe:
            probe.connect(_PROBE_ADDRESS)
            return probe.getsockname()[0]
    except OSError:
        logger.warning("Could not determine LAN address", exc_info=True)
        return None


def is_unreachable_host(host: str) -> bool:
    """Whether another device on the network cannot reach ``host``."""
    if host.lower() in {"localhost", "localhost.localdomain"}:
        return True
    try:
        address = ipaddress.ip_address(host.strip("[]"))
    except ValueError:
        return False
    return address.is_loopback or address.is_unspecified


@dataclass(frozen=True)
class HandoffLink:
    """A phone upload URL ready for display."""

    session_id: str
    url: str

    def qr_svg(self, scale: int = 8) -> str:
        """Render the URL as inline SVG markup."""
        return segno.make_qr(self.url, error="m").svg_inline(scale=scale)

    def qr_text(self) -> str:
        """Render the URL as a QR code made of terminal block characters."""
        buffer = io.StringIO()
        segno.make_qr(self.url, error="m").terminal(out=buffer, compact=True)
        return buffer.getvalue()


@dataclass
class HandoffPublisher:
    """Builds phone upload links that point back to this desktop."""

    scheme: str
    port: int
    host: str | None = None
    resolve_address: Callable[[], str | None] = discover_lan_address

    def resolve_host(self) -> str:
        """Return the host a phone on the same network should use."""
        if self.host:
            if is_unreachable_host(self.host):
                logger.warning(
                    "Configured handoff host %s is not reachable from a phone",
                    self.host,
                )
            return self.host
        discovered = self.resolve_address()
        if not discovered or is_unreachable_host(discovered):
            raise HandoffAddressError(
                "Could not determine this computer's network address. "
                "Set HANDOFF_HOST to the IP address your phone can reach."
            )
        return discovered

    def publish(self, session_id: str) -> HandoffLink:
        """Build the handoff link for a session."""
        host = self.resolve_host()
        if ":" in host and not host.startswith("["):
            host = f"[{host}]"
        url = (
            f"{self.scheme}://{host}:{self.port}"
            f"{PHONE_UPLOAD_ROUTE}/{quote(session_id, safe='')}"
        )
        logger.info("Published phone handoff link for session %s", session_id)
        return HandoffLink(session_id=session_id, url=url)
