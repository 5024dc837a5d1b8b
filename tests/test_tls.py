import ssl

import pytest

from pktbroker.tls import (
    TlsError,
    check_name,
    client_context,
    host_match,
    internal_client_context,
    internal_server_context,
    server_context,
    tls_read,
    tls_write,
)


class FakeSock:
    def __init__(self, recv_result=None, send_result=None):
        self.recv_result = recv_result
        self.send_result = send_result
        self.sent = []

    def recv(self, size):
        if isinstance(self.recv_result, BaseException):
            raise self.recv_result
        return self.recv_result[:size]

    def send(self, data):
        if isinstance(self.send_result, BaseException):
            raise self.send_result
        self.sent.append(data)
        return len(data) if self.send_result is None else self.send_result


@pytest.mark.parametrize(
    "name, pattern, expected",
    [
        ("broker.example.com", "broker.example.com", True),
        ("Broker.Example.COM", "broker.example.com", True),
        ("broker.example.com", "*.example.com", True),
        ("a.b.example.com", "*.example.com", False),
        ("example.com", "*.example.com", False),
        ("localhost", "*.example.com", False),
        ("broker.example.com", "other.example.com", False),
        ("broker.example.co", "broker.example.com", False),
    ],
)
def test_check_name(name, pattern, expected):
    assert check_name(name, pattern) is expected


def test_short_star_pattern_is_literal():
    assert check_name("*.", "*.") is True
    assert check_name("a.", "*.") is False


def test_host_match_uses_dns_altnames():
    cert = {
        "subject": ((("commonName", "cn.example.com"),),),
        "subjectAltName": (("IP Address", "127.0.0.1"), ("DNS", "*.example.com")),
    }
    assert host_match(cert, "broker.example.com") is True


def test_host_match_altnames_override_common_name():
    cert = {
        "subject": ((("commonName", "cn.example.com"),),),
        "subjectAltName": (("DNS", "alt.example.com"),),
    }
    assert host_match(cert, "cn.example.com") is False


def test_host_match_falls_back_to_common_name():
    cert = {
        "subject": (
            (("organizationName", "Example"),),
            (("commonName", "cn.example.com"),),
        ),
    }
    assert host_match(cert, "CN.example.com") is True
    assert host_match(cert, "other.example.com") is False


def test_host_match_without_certificate():
    assert host_match(None, "broker.example.com") is False
    assert host_match({}, "broker.example.com") is False


def test_client_context_missing_ca_is_not_fatal(tmp_path):
    ctx = client_context(str(tmp_path / "missing.pem"))
    assert ctx.verify_mode == ssl.CERT_NONE
    assert ctx.check_hostname is False


def test_client_context_missing_key_raises(tmp_path):
    with pytest.raises(TlsError):
        client_context(
            str(tmp_path / "verify.pem"),
            str(tmp_path / "key.pem"),
            str(tmp_path / "cert.pem"),
        )


def test_server_context_missing_key_raises(tmp_path):
    with pytest.raises(TlsError):
        server_context(str(tmp_path / "key.pem"), str(tmp_path / "cert.pem"))


def test_internal_contexts_need_conf_files(tmp_path):
    with pytest.raises(TlsError):
        internal_client_context(str(tmp_path))
    with pytest.raises(TlsError):
        internal_server_context(str(tmp_path))


def test_tls_read_returns_data():
    assert tls_read(FakeSock(recv_result=b"payload"), 3) == b"pay"


def test_tls_read_want_read_means_retry():
    assert tls_read(FakeSock(recv_result=ssl.SSLWantReadError()), 10) == b""


def test_tls_read_want_write_propagates():
    with pytest.raises(ssl.SSLWantWriteError):
        tls_read(FakeSock(recv_result=ssl.SSLWantWriteError()), 10)


def test_tls_read_eof_and_errors_raise():
    with pytest.raises(ConnectionError):
        tls_read(FakeSock(recv_result=b""), 10)
    with pytest.raises(ConnectionError):
        tls_read(FakeSock(recv_result=ssl.SSLError("bad record")), 10)


def test_tls_write_counts_bytes():
    sock = FakeSock(send_result=2)
    assert tls_write(sock, b"abcd") == 2
    assert sock.sent == [b"abcd"]


def test_tls_write_empty_does_not_touch_socket():
    sock = FakeSock(send_result=ssl.SSLError("unused"))
    assert tls_write(sock, b"") == 0
    assert sock.sent == []


def test_tls_write_want_write_means_retry():
    assert tls_write(FakeSock(send_result=ssl.SSLWantWriteError()), b"abc") == 0


def test_tls_write_want_read_propagates_and_errors_raise():
    with pytest.raises(ssl.SSLWantReadError):
        tls_write(FakeSock(send_result=ssl.SSLWantReadError()), b"abc")
    with pytest.raises(ConnectionError):
        tls_write(FakeSock(send_result=BrokenPipeError()), b"abc")