"""
Unit tests for the CGI handler.
"""

import os
import socket
import threading
import time

import pytest

from tinyhttpd.core.connection import Connection
from tinyhttpd.handlers.dynamic import DynamicContentHandler, SpawnError, build_environment
from tinyhttpd.handlers.metadata import stat_resource
from tinyhttpd.http.errors import AccessDeniedError
from tinyhttpd.http.uri import resolve_target

from conftest import read_all, split_response


def serve(conn_pair, docroot, target, **kwargs):
    conn, client = conn_pair
    resource = resolve_target(target)
    path = os.path.join(str(docroot), resource.filesystem_path)

    returncode = DynamicContentHandler(**kwargs).serve(conn, resource, path)
    conn.close()
    return returncode, read_all(client)


class TestBuildEnvironment:
    """Tests for build_environment()."""

    def test_adds_query_string(self):
        """Test that QUERY_STRING is set on top of the base environment."""
        env = build_environment("15&20", base={"PATH": "/bin"})

        assert env == {"PATH": "/bin", "QUERY_STRING": "15&20"}

    def test_overwrites_inherited_value(self):
        """Test that a stale QUERY_STRING is replaced."""
        env = build_environment("", base={"QUERY_STRING": "stale"})

        assert env["QUERY_STRING"] == ""

    def test_does_not_touch_process_environment(self, monkeypatch):
        """Test that os.environ is never written."""
        monkeypatch.delenv("QUERY_STRING", raising=False)

        env = build_environment("a=1")

        assert env["QUERY_STRING"] == "a=1"
        assert "QUERY_STRING" not in os.environ

    def test_inherits_process_environment(self, monkeypatch):
        """Test that the server's environment is passed through."""
        monkeypatch.setenv("TINYHTTPD_TEST_MARKER", "yes")

        assert build_environment("")["TINYHTTPD_TEST_MARKER"] == "yes"


class TestCheck:
    """Tests for DynamicContentHandler.check()."""

    def test_executable_passes(self, docroot):
        """Test that an executable regular file is accepted."""
        resource = resolve_target("/cgi-bin/adder")
        DynamicContentHandler().check(resource, stat_resource(str(docroot / "cgi-bin" / "adder")))

    def test_not_executable_is_forbidden(self, docroot):
        """Test the owner-execute bit check."""
        resource = resolve_target("/cgi-bin/noexec")

        with pytest.raises(AccessDeniedError) as exc_info:
            DynamicContentHandler().check(resource, stat_resource(str(docroot / "cgi-bin" / "noexec")))

        assert exc_info.value.status == 403
        assert exc_info.value.long_message == "Tiny couldn't run the CGI program"

    def test_directory_is_forbidden(self, docroot):
        """Test that the cgi-bin directory itself can't be run."""
        resource = resolve_target("/cgi-bin/")

        with pytest.raises(AccessDeniedError):
            DynamicContentHandler().check(resource, stat_resource(str(docroot / "cgi-bin")))


class TestServe:
    """Tests for DynamicContentHandler.serve()."""

    def test_adder(self, conn_pair, docroot):
        """Test the classic adder: fixed head, then the program's output."""
        returncode, raw = serve(conn_pair, docroot, "/cgi-bin/adder?15&20")
        status, headers, body = split_response(raw)

        assert returncode == 0
        assert raw.startswith(b"HTTP/1.0 200 OK\r\nServer: Tiny Web Server\r\nConnection: close\r\n")
        assert status == "HTTP/1.0 200 OK"
        assert headers["Content-type"] == "text/html"
        assert body == b"Welcome to add.com: The answer is: 15 + 20 = 35\n"
        assert int(headers["Content-length"]) == len(body)

    def test_query_string_and_no_arguments(self, conn_pair, docroot):
        """Test the parameter passing contract: env var only, no argv."""
        _, raw = serve(conn_pair, docroot, "/cgi-bin/env?name=tiny&x=1")

        assert b"QUERY_STRING=name=tiny&x=1\n" in raw
        assert b"ARGC=0\n" in raw

    def test_empty_query_string(self, conn_pair, docroot, monkeypatch):
        """Test that an inherited QUERY_STRING doesn't leak into the child."""
        monkeypatch.setenv("QUERY_STRING", "leaked")

        _, raw = serve(conn_pair, docroot, "/cgi-bin/env")

        assert b"QUERY_STRING=\n" in raw

    def test_server_environment_unchanged(self, conn_pair, docroot, monkeypatch):
        """Test that serving leaves os.environ alone."""
        monkeypatch.delenv("QUERY_STRING", raising=False)

        serve(conn_pair, docroot, "/cgi-bin/env?secret")

        assert "QUERY_STRING" not in os.environ

    def test_concurrent_spawns_do_not_mix_parameters(self, docroot):
        """Test that children started at the same time each see their own query."""
        results = {}

        def run(query):
            server_sock, client_sock = socket.socketpair()
            with client_sock:
                with Connection(server_sock, ("127.0.0.1", 1), timeout=5.0) as conn:
                    resource = resolve_target(f"/cgi-bin/env?{query}")
                    DynamicContentHandler().serve(conn, resource, str(docroot / "cgi-bin" / "env"))
                results[query] = read_all(client_sock)

        threads = [threading.Thread(target=run, args=(f"q{i}",)) for i in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=10)

        for i in range(8):
            assert f"QUERY_STRING=q{i}\n".encode() in results[f"q{i}"]

    def test_socket_timeout_restored(self, conn_pair, docroot):
        """Test that the deadline comes back after the child exits."""
        conn, _ = conn_pair
        resource = resolve_target("/cgi-bin/env")

        DynamicContentHandler().serve(conn, resource, str(docroot / "cgi-bin" / "env"))

        assert conn.socket.gettimeout() == 5.0

    def test_cgi_timeout_kills_child(self, conn_pair, docroot):
        """Test that a runaway program is killed and reaped."""
        started = time.time()

        returncode, raw = serve(conn_pair, docroot, "/cgi-bin/slow", cgi_timeout=0.5)

        assert returncode < 0
        assert time.time() - started < 10
        assert raw.startswith(b"HTTP/1.0 200 OK\r\nServer: Tiny Web Server\r\n")

    def test_not_executable_refused_before_head(self, conn_pair, docroot):
        """Test that the final exec check happens before anything is sent."""
        conn, _ = conn_pair
        resource = resolve_target("/cgi-bin/noexec")

        with pytest.raises(AccessDeniedError):
            DynamicContentHandler().serve(conn, resource, str(docroot / "cgi-bin" / "noexec"))

        assert conn.bytes_sent == 0

    def test_spawn_failure_after_head(self, conn_pair, docroot):
        """Test that a program that can't be exec'd raises SpawnError."""
        conn, _ = conn_pair
        bogus = docroot / "cgi-bin" / "bogus"
        bogus.write_bytes(b"\x00\x01not a program")
        os.chmod(bogus, 0o755)

        with pytest.raises(SpawnError):
            DynamicContentHandler().serve(conn, resolve_target("/cgi-bin/bogus"), str(bogus))

        assert conn.bytes_sent > 0
