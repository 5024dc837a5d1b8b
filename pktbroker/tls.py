"""TLS contexts, peer host-name matching and non-blocking TLS I/O."""

from __future__ import annotations

import os
import ssl
from typing import Any, Mapping, Optional

from .log import DebugRealm, Logger

CA_CERT_FILE = "/etc/ssl/certs/ca-certificates.crt"

_log = Logger()


class TlsError(RuntimeError):
    """A TLS context could not be set up."""


def check_name(name: str, pattern: str) -> bool:
    """Match a host name against a certificate name, case-insensitively.

    A leading ``*.`` in the pattern matches exactly one leftmost label.
    """
    subject = name
    if len(pattern) > 2 and pattern.startswith("*."):
        pattern = pattern[1:]
        dot = name.find(".")
        if dot < 0:
            return False
        subject = name[dot:]
    return len(subject) == len(pattern) and subject.lower() == pattern.lower()


def host_match(cert: Optional[Mapping[str, Any]], name: str) -> bool:
    """Check a peer certificate (as from ``getpeercert()``) against a host name.

    DNS subject alternative names are used when the certificate has any
    alternative names at all; otherwise the subject's common names are tried.
    """
    if not cert:
        return False
    altnames = cert.get("subjectAltName")
    if altnames:
        return any(kind == "DNS" and check_name(name, value) for kind, value in altnames)
    for rdn in cert.get("subject", ()):
        for key, value in rdn:
            if key == "commonName" and check_name(name, value):
                return True
    return False


def _load_verify(ctx: ssl.SSLContext, verify: str) -> None:
    try:
        ctx.load_verify_locations(cafile=verify)
    except (OSError, ssl.SSLError):
        _log.error(f"failed to load CA cert file {verify}")


def _load_chain(ctx: ssl.SSLContext, key: str, cert: str) -> None:
    try:
        ctx.load_cert_chain(certfile=cert, keyfile=key)
    except (OSError, ssl.SSLError) as exc:
        raise TlsError(f"failed to load TLS key file {key} or certificates file {cert}") from exc


def client_context(
    verify: str, key: Optional[str] = None, cert: Optional[str] = None
) -> ssl.SSLContext:
    """A client context trusting the CAs in ``verify``.

    With a key and certificate the client presents them and requires the peer
    to verify. A CA file that cannot be loaded is logged; a key or
    certificate that cannot be loaded raises TlsError.
    """
    ctx = ssl.SSLContext(ssl.PROTOCOL_TLS_CLIENT)
    ctx.check_hostname = False
    ctx.verify_mode = ssl.CERT_NONE
    _load_verify(ctx, verify)
    if key is not None and cert is not None:
        ctx.verify_mode = ssl.CERT_REQUIRED
        _load_chain(ctx, key, cert)
    _log.debug(DebugRealm.TLS, f"client verify mode: {int(ctx.verify_mode)}")
    return ctx


def server_context(key: str, cert: str, verify: Optional[str] = None) -> ssl.SSLContext:
    """A server context with the given key and certificate chain.

    With ``verify`` clients must present a certificate signed by those CAs.
    """
    ctx = ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER)
    _load_chain(ctx, key, cert)
    if verify is not None:
        ctx.verify_mode = ssl.CERT_REQUIRED
        _load_verify(ctx, verify)
    _log.debug(DebugRealm.TLS, f"server verify mode: {int(ctx.verify_mode)}")
    return ctx


def public_client_context() -> ssl.SSLContext:
    """A client context trusting the system CA bundle."""
    return client_context(CA_CERT_FILE)


def internal_client_context(conf_dir: str) -> ssl.SSLContext:
    """A client context from verify.pem, key.pem and cert.pem in conf_dir."""
    return client_context(
        os.path.join(conf_dir, "verify.pem"),
        os.path.join(conf_dir, "key.pem"),
        os.path.join(conf_dir, "cert.pem"),
    )


def internal_server_context(conf_dir: str) -> ssl.SSLContext:
    """A server context from key.pem, cert.pem and verify.pem in conf_dir."""
    return server_context(
        os.path.join(conf_dir, "key.pem"),
        os.path.join(conf_dir, "cert.pem"),
        os.path.join(conf_dir, "verify.pem"),
    )


def tls_read(sock: Any, size: int) -> bytes:
    """Read from a non-blocking TLS socket.

    Returns b"" when no data is available yet. ssl.SSLWantWriteError is let
    through so the caller can wait for writability. Raises ConnectionError
    when the connection has closed or failed.
    """
    try:
        data = sock.recv(size)
    except ssl.SSLWantReadError:
        return b""
    except ssl.SSLWantWriteError:
        raise
    except (ssl.SSLError, OSError) as exc:
        raise ConnectionError(f"TLS read failed: {exc}") from exc
    if not data:
        raise ConnectionError("TLS connection closed")
    return data


def tls_write(sock: Any, data: bytes) -> int:
    """Write to a non-blocking TLS socket; returns the bytes written.

    Returns 0 when nothing can be written now. ssl.SSLWantReadError is let
    through so the caller can wait for readability. Raises ConnectionError
    when the connection has failed.
    """
    if not data:
        return 0
    try:
        return sock.send(data)
    except ssl.SSLWantWriteError:
        return 0
    except ssl.SSLWantReadError:
        raise
    except (ssl.SSLError, OSError) as exc:
        raise ConnectionError(f"TLS write failed: {exc}") from exc