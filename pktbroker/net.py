"""IPv4 stream sockets: listening, connecting and host lookup."""

from __future__ import annotations

import errno
import os
import socket
from typing import Tuple, Union

from .log import Logger

_log = Logger()

# Not every platform build of the socket module names these.
_SOL_IP = getattr(socket, "SOL_IP", socket.IPPROTO_IP)
_IP_TRANSPARENT = getattr(socket, "IP_TRANSPARENT", 19)

_CONNECT_PENDING = {0, errno.EINPROGRESS, errno.EWOULDBLOCK}


def make_non_blocking(sock: Union[socket.socket, int]) -> None:
    """Put a socket or a raw file descriptor into non-blocking mode.

    Raises OSError when the mode cannot be changed.
    """
    if isinstance(sock, int):
        os.set_blocking(sock, False)
    else:
        sock.setblocking(False)


def inet_listen(port: int, transparent: bool = False) -> socket.socket:
    """Open a TCP socket listening on every IPv4 address at the given port.

    With ``transparent`` the socket also accepts connections addressed to any
    host; failing to enable that is logged and otherwise ignored.
    """
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    try:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        if transparent:
            try:
                sock.setsockopt(_SOL_IP, _IP_TRANSPARENT, 1)
            except OSError as exc:
                _log.error(
                    "inet listen: failed to set IP_TRANSPARENT flag on socket: "
                    f"{exc.strerror}"
                )
        try:
            sock.bind(("", port))
        except OSError:
            _log.error(f"unable to bind to port {port}")
            raise
        try:
            sock.listen(1)
        except OSError:
            _log.error("unable put socket in listen mode")
            raise
    except OSError:
        sock.close()
        raise
    return sock


def inet_connect(address: Tuple[str, int], non_blocking: bool = True) -> socket.socket:
    """Start a TCP connection to an IPv4 (host, port).

    In non-blocking mode the connection may still be in progress when the
    socket is returned. Raises OSError when the connect call fails outright.
    """
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    try:
        if non_blocking:
            make_non_blocking(sock)
        err = sock.connect_ex(address)
    except OSError:
        sock.close()
        raise
    if err not in _CONNECT_PENDING:
        sock.close()
        _log.error(f"inet connect: name connect call failed: {os.strerror(err)}")
        raise OSError(err, os.strerror(err))
    return sock


def lookup_host(host: str) -> str:
    """Resolve a host name to its first IPv4 address.

    Raises ValueError for an empty name and OSError when the lookup fails.
    """
    if not host:
        raise ValueError("host name is empty")
    infos = socket.getaddrinfo(host, None, socket.AF_INET, socket.SOCK_STREAM)
    if not infos:
        raise OSError(f"no IPv4 address found for {host}")
    return infos[0][4][0]