"""Unit tests for the connection accept loop."""

import errno
import json
import logging
import socket

import pytest

from json_server.domain.http_types import HttpResponse
from json_server.lifecycle.errors import AcceptFatal
from json_server.lifecycle.state import ServerLifecycle
from json_server.transport.accept_loop import _handle_accepted_client, run_accept_loop
from json_server.transport.context import WorkerContext
from tests.utils.http import read_http_response


class ScriptedListener:
    """Listening socket stub whose ``accept`` follows a script of outcomes."""

    def __init__(self, outcomes):
        self._outcomes = list(outcomes)
        self.accept_calls = 0
        self.closed = False

    def accept(self):
        self.accept_calls += 1
        outcome = self._outcomes.pop(0)
        if callable(outcome):
            outcome = outcome()
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    def close(self):
        self.closed = True


def _ok(_request):
    return HttpResponse("HTTP/1.1 200 OK", {}, b"", False)


@pytest.fixture(name="context")
def context_fixture(make_config):
    return WorkerContext(
        handler=_ok,
        lifecycle=ServerLifecycle(),
        server_config=make_config().server,
        idle_timeout=1,
    )


def test_non_transient_accept_error_is_fatal(context):
    listener = ScriptedListener([OSError(errno.EBADF, "Bad file descriptor")])

    with pytest.raises(AcceptFatal) as exc_info:
        run_accept_loop(listener, context)

    assert isinstance(exc_info.value.__cause__, OSError)
    assert listener.closed


def test_transient_accept_error_is_retried(context, caplog):
    def stop_then_time_out():
        context.lifecycle.request_stop()
        return socket.timeout("timed out")

    listener = ScriptedListener(
        [OSError(errno.EMFILE, "Too many open files"), stop_then_time_out]
    )

    with caplog.at_level(logging.INFO, logger="json_server"):
        run_accept_loop(listener, context)

    assert listener.accept_calls == 2
    assert listener.closed
    retried = [r for r in caplog.records if getattr(r, "event", None) == "accept_error"]
    assert [r.errno for r in retried] == [errno.EMFILE]


def test_accept_error_after_stop_ends_loop_quietly(context):
    context.lifecycle.request_stop()
    listener = ScriptedListener([OSError(errno.EBADF, "Bad file descriptor")])

    run_accept_loop(listener, context)

    assert listener.closed


def test_connection_accepted_while_draining_is_rejected(context):
    server_side, client_side = socket.socketpair()
    context.lifecycle.begin_draining()
    listener = ScriptedListener(
        [(server_side, ("127.0.0.1", 5000)), socket.timeout("timed out")]
    )

    with client_side:
        run_accept_loop(listener, context)
        response = read_http_response(client_side)

    assert response.status_code == 503
    assert json.loads(response.body)["message"] == "Server is shutting down"
    assert context.lifecycle.active_connection_count() == 0


class DrainDuringRegistration(ServerLifecycle):
    """Lifecycle whose drain starts just before a connection is registered."""

    def register_connection(self, connection):
        self.begin_draining()
        super().register_connection(connection)


def test_drain_racing_registration_rejects_connection(make_config):
    lifecycle = DrainDuringRegistration()
    context = WorkerContext(
        handler=_ok,
        lifecycle=lifecycle,
        server_config=make_config().server,
        idle_timeout=1,
    )
    server_side, client_side = socket.socketpair()

    with client_side:
        _handle_accepted_client(server_side, ("127.0.0.1", 5001), context)
        response = read_http_response(client_side)

    assert response.status_code == 503
    assert lifecycle.active_connection_count() == 0
    assert lifecycle.wait_for_connections(timeout=0)
