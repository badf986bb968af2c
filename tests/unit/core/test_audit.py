"""Tests for decision records, the audit recorder and decision log sinks."""

import asyncio
import json
import logging

import httpx
import pytest

from academy.core.audit.records import DecisionRecord, DecisionResult
from academy.core.audit.recorder import AuditBuffer, AuditRecorder, DEFAULT_BUFFER_SIZE
from academy.core.audit.sinks import DecisionForwardError, HttpDecisionLogSink, LoggingDecisionLogSink
from academy.core.rbac.evaluator import ActionRequest, PermissionEvaluator, Target
from academy.core.rbac.permissions import CRITICAL_ROLES_PERMISSION
from tests.factories import FailingSink, RecordingSink, StepClock


def evaluate(required, actor, name="test action", **kwargs):
    req = ActionRequest.build(name, required, actor, **kwargs)
    return req, PermissionEvaluator().evaluate(req)


def make_record(name="test action", granted=True):
    req, evaluation = evaluate(["read:users"], ["read:users"] if granted else [], name=name)
    return DecisionRecord.from_evaluation(req, evaluation)


class TestDecisionRecord:
    """Test record construction and payloads."""

    def test_granted_record(self):
        req, evaluation = evaluate(["manage:roles", "assign:roles"], ["assign:roles"])
        record = DecisionRecord.from_evaluation(req, evaluation, actor_id="7", route="/dashboard/roles")

        assert record.result is DecisionResult.GRANTED
        assert record.granted
        assert record.required_permissions == ("assign:roles", "manage:roles")
        assert record.matching_permissions == ("assign:roles",)
        assert record.actor_id == "7"
        assert record.route == "/dashboard/roles"

    def test_denied_record(self):
        req, evaluation = evaluate(["manage:permissions"], ["view:analytics"])
        record = DecisionRecord.from_evaluation(req, evaluation)
        assert record.result is DecisionResult.DENIED
        assert record.matching_permissions == ()

    def test_critical_denial_records_escalated_requirement(self):
        req, evaluation = evaluate(
            ["manage:roles"],
            ["manage:roles"],
            context={"role_change": {"previous": "user", "new": "admin"}},
        )
        record = DecisionRecord.from_evaluation(req, evaluation)
        assert record.result is DecisionResult.DENIED
        assert CRITICAL_ROLES_PERMISSION in record.required_permissions

    def test_record_is_immutable(self):
        record = make_record()
        with pytest.raises(AttributeError):
            record.result = DecisionResult.DENIED
        with pytest.raises(TypeError):
            record.context["injected"] = True

    def test_malformed_requirement_recorded_as_empty(self):
        req, evaluation = evaluate("manage:roles", ["manage:roles"])
        record = DecisionRecord.from_evaluation(req, evaluation)
        assert record.required_permissions == ()
        assert record.result is DecisionResult.DENIED

    def test_payload_shape(self):
        req, evaluation = evaluate(
            ["delete:users"],
            ["delete:users"],
            target=Target(id="42", name="Ann"),
            context={"reason": "spam", "tags": {"b", "a"}},
        )
        record = DecisionRecord.from_evaluation(req, evaluation, actor_id="1")
        payload = record.to_payload()

        assert payload["action"] == "test action"
        assert payload["requiredPermissions"] == ["delete:users"]
        assert payload["userPermissions"] == ["delete:users"]
        assert payload["matchingPermissions"] == ["delete:users"]
        assert payload["isSuperAdmin"] is False
        assert payload["accessGranted"] is True
        assert payload["result"] == "GRANTED"
        assert payload["target"] == {"id": "42", "name": "Ann"}
        assert payload["additionalData"] == {"reason": "spam", "tags": ["a", "b"]}
        assert payload["userId"] == "1"
        # Must be JSON serializable as-is
        json.dumps(payload)


class TestAuditBuffer:
    """Test the ring buffer."""

    def test_default_capacity(self):
        assert AuditBuffer().capacity == DEFAULT_BUFFER_SIZE == 50

    def test_invalid_capacity(self):
        with pytest.raises(ValueError):
            AuditBuffer(0)

    def test_evicts_oldest(self):
        buffer = AuditBuffer(2)
        first, second, third = make_record("a"), make_record("b"), make_record("c")
        for record in (first, second, third):
            buffer.append(record)
        assert buffer.snapshot() == [second, third]
        assert len(buffer) == 2

    def test_snapshot_is_a_copy(self):
        buffer = AuditBuffer(3)
        buffer.append(make_record())
        snapshot = buffer.snapshot()
        snapshot.clear()
        assert len(buffer) == 1


class TestAuditRecorder:
    """Test recording and best-effort forwarding."""

    def test_record_appends_before_returning(self, recorder):
        req, evaluation = evaluate(["read:users"], ["read:users"])
        record = recorder.record(req, evaluation, actor_id="1")
        assert recorder.recent() == [record]

    def test_buffer_keeps_last_fifty(self):
        recorder = AuditRecorder(clock=StepClock())
        records = []
        for i in range(DEFAULT_BUFFER_SIZE + 1):
            req = ActionRequest.build(f"action {i}", [], [])
            records.append(recorder.record(req, PermissionEvaluator().evaluate(req)))

        recent = recorder.recent()
        assert len(recent) == 50
        assert records[0] not in recent
        assert recent[0] is records[1]
        assert recent[-1] is records[-1]

    def test_buffer_never_exceeds_capacity(self):
        recorder = AuditRecorder(capacity=5)
        for i in range(20):
            req = ActionRequest.build(f"action {i}", [], [])
            recorder.record(req, PermissionEvaluator().evaluate(req))
            assert len(recorder.recent()) <= 5

    def test_recent_cannot_mutate_buffer(self, recorder):
        req, evaluation = evaluate([], [])
        recorder.record(req, evaluation)
        recorder.recent().clear()
        assert len(recorder.recent()) == 1

    def test_timestamps_from_clock(self, recorder, clock):
        req, evaluation = evaluate([], [])
        first = recorder.record(req, evaluation)
        second = recorder.record(req, evaluation)
        assert second.timestamp > first.timestamp

    def test_no_sink_keeps_records_local(self, recorder):
        req, evaluation = evaluate([], [])
        recorder.record(req, evaluation)
        assert recorder.pending == 0

    def test_no_event_loop_skips_forward(self):
        """Test that recording outside a loop still works."""
        sink = RecordingSink()
        recorder = AuditRecorder(sink)
        req, evaluation = evaluate(["read:users"], ["read:users"])
        record = recorder.record(req, evaluation)
        assert recorder.recent() == [record]
        assert recorder.pending == 0
        assert sink.records == []

    @pytest.mark.asyncio
    async def test_forwards_once_in_background(self):
        sink = RecordingSink()
        recorder = AuditRecorder(sink)
        req, evaluation = evaluate(["read:users"], ["read:users"])

        record = recorder.record(req, evaluation)
        # Not delivered synchronously
        assert sink.records == []
        assert recorder.pending == 1

        await recorder.drain()
        assert sink.records == [record]
        assert recorder.pending == 0

    @pytest.mark.asyncio
    async def test_failing_sink_is_contained(self, caplog):
        sink = FailingSink()
        recorder = AuditRecorder(sink)
        req, evaluation = evaluate(["read:users"], ["read:users"])

        with caplog.at_level(logging.WARNING, logger="academy.core.audit.recorder"):
            record = recorder.record(req, evaluation)
            await recorder.drain()

        assert record.granted
        assert evaluation.granted
        assert sink.calls == 1  # Never retried
        assert recorder.forward_failures == 1
        assert recorder.recent() == [record]
        assert "Failed to forward decision" in caplog.text

    @pytest.mark.asyncio
    async def test_slow_sink_does_not_delay_caller(self):
        release = asyncio.Event()

        class SlowSink:
            async def send(self, record):
                await release.wait()

        recorder = AuditRecorder(SlowSink())
        req, evaluation = evaluate([], [])
        recorder.record(req, evaluation)
        assert recorder.pending == 1

        release.set()
        await recorder.drain()
        assert recorder.pending == 0


class TestHttpDecisionLogSink:
    """Test HTTP forwarding."""

    @pytest.mark.asyncio
    async def test_posts_payload(self):
        received = []

        def handler(request: httpx.Request) -> httpx.Response:
            received.append((request.url.path, request.headers.get("authorization"), json.loads(request.content)))
            return httpx.Response(200, json={"success": True})

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            sink = HttpDecisionLogSink(
                "http://logs.test/api/auth/action-permission-log",
                headers={"Authorization": "Bearer t"},
                client=client,
            )
            record = make_record()
            await sink.send(record)

        path, auth, body = received[0]
        assert path == "/api/auth/action-permission-log"
        assert auth == "Bearer t"
        assert body == record.to_payload()

    @pytest.mark.asyncio
    async def test_error_status_raises(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(503))
        async with httpx.AsyncClient(transport=transport) as client:
            sink = HttpDecisionLogSink("http://logs.test/log", client=client)
            with pytest.raises(DecisionForwardError) as exc_info:
                await sink.send(make_record())
        assert exc_info.value.status_code == 503

    @pytest.mark.asyncio
    async def test_transport_error_raises(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            sink = HttpDecisionLogSink("http://logs.test/log", client=client)
            with pytest.raises(DecisionForwardError) as exc_info:
                await sink.send(make_record())
        assert exc_info.value.status_code is None

    @pytest.mark.asyncio
    async def test_recorder_contains_http_failure(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(500))
        async with httpx.AsyncClient(transport=transport) as client:
            recorder = AuditRecorder(HttpDecisionLogSink("http://logs.test/log", client=client))
            req, evaluation = evaluate(["read:users"], [])
            record = recorder.record(req, evaluation)
            await recorder.drain()

        assert record.result is DecisionResult.DENIED
        assert recorder.forward_failures == 1


class TestLoggingDecisionLogSink:
    """Test log rendering."""

    @pytest.mark.asyncio
    async def test_denied_logged_as_warning(self, caplog):
        sink = LoggingDecisionLogSink(logging.getLogger("academy.test.decisions"))
        with caplog.at_level(logging.INFO, logger="academy.test.decisions"):
            await sink.send(make_record(granted=False))
            await sink.send(make_record(granted=True))

        levels = [r.levelno for r in caplog.records if r.name == "academy.test.decisions"]
        assert levels == [logging.WARNING, logging.INFO]
        assert "Decision DENIED" in caplog.text
