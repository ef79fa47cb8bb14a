"""
Integration Tests for the Intent Lifecycle

Tests proving:
1. Only authorized AND approved intents are released
2. Policy denials skip the context gate
3. Policy and context reasons are recorded under separate audit stages
4. Rejections at generation are audited and re-raised
5. Text processing with the mock LLM collaborator
"""

import json
from datetime import datetime, timedelta, timezone

import pytest

from agent_core.audit_trail import AuditStage, AuditTrail
from agent_core.context_gate import ContextGate
from agent_core.errors import InvalidIntent
from agent_core.intent_generator import IntentGenerator
from agent_core.intent_model import Intent, IntentDisposition
from agent_core.lifecycle import IntentLifecycle
from agent_core.providers import (
    ContextSupplier,
    InMemoryStorage,
    LLMOptions,
    LLMProvider,
    MockLLMProvider,
    StaticContextSupplier,
    StorageProvider,
)


@pytest.fixture
def lifecycle(engine):
    return IntentLifecycle(
        generator=IntentGenerator(),
        policy=engine,
        gate=ContextGate(),
        audit=AuditTrail(),
        llm=MockLLMProvider(),
    )


def stages(audit: AuditTrail, intent_id: str):
    return [(r.stage, r.disposition) for r in audit.records(intent_id)]


# -----------------------------------------------------------------------------
# Test: Submit
# -----------------------------------------------------------------------------
class TestSubmit:
    def test_authorized_and_approved_is_released(self, lifecycle, awake_context, device_intent):
        lifecycle.policy.grant_actions("device", ["device.control"], expires_in=timedelta(hours=1))
        decision = lifecycle.submit(device_intent, awake_context)
        assert decision.released is True
        assert decision.disposition == IntentDisposition.APPROVED
        assert stages(lifecycle.audit, device_intent.id) == [
            ("policy", "authorized"),
            ("context", "approved"),
        ]

    def test_policy_denial_skips_context_gate(self, lifecycle, sleeping_context, device_intent):
        decision = lifecycle.submit(device_intent, sleeping_context)
        assert decision.released is False
        assert decision.authorized is False
        assert decision.context_reason is None
        assert decision.disposition == IntentDisposition.DENIED
        assert stages(lifecycle.audit, device_intent.id) == [("policy", "denied")]

    def test_authorized_but_deferred(self, lifecycle, sleeping_context, device_intent):
        lifecycle.policy.grant_actions("device", ["device"])
        decision = lifecycle.submit(device_intent, sleeping_context)
        assert decision.authorized is True
        assert decision.approved is False
        assert decision.disposition == IntentDisposition.DEFERRED
        assert "sleeping" in decision.context_reason
        assert "sleeping" not in decision.policy_reason

        policy_record, context_record = lifecycle.audit.records(device_intent.id)
        assert policy_record.stage == AuditStage.POLICY.value
        assert context_record.stage == AuditStage.CONTEXT.value
        assert "sleeping" in context_record.reason
        assert "sleeping" not in policy_record.reason

    def test_zero_permission_intent_released(self, lifecycle, awake_context, generator):
        intent = generator.generate("weather.query", 0.9, {}, "User asking about weather")
        decision = lifecycle.submit(intent, awake_context)
        assert decision.released is True
        assert decision.policy_reason == "No permission required"

    def test_invalid_peer_intent_rejected(self, lifecycle, awake_context):
        intent = Intent(intent_type="device.control", confidence=1.5, reasoning="Peer")
        with pytest.raises(InvalidIntent):
            lifecycle.submit(intent, awake_context)
        assert stages(lifecycle.audit, intent.id) == [("generator", "rejected")]

    def test_unserializable_peer_intent_is_audited(self, lifecycle, awake_context):
        intent = Intent(
            intent_type="reminder.create",
            confidence=0.9,
            reasoning="Peer",
            parameters={"at": datetime(2026, 1, 1, tzinfo=timezone.utc)},
        )
        with pytest.raises(InvalidIntent):
            lifecycle.submit(intent, awake_context)
        assert stages(lifecycle.audit, intent.id) == [("generator", "rejected")]
        (line,) = lifecycle.audit.to_jsonl().splitlines()
        assert json.loads(line)["intent"]["parameters"]["at"].startswith("2026-01-01")

    def test_intent_is_not_mutated(self, lifecycle, sleeping_context, device_intent):
        before = device_intent.to_dict()
        lifecycle.submit(device_intent, sleeping_context)
        assert device_intent.to_dict() == before

    def test_decision_to_dict(self, lifecycle, awake_context, device_intent):
        data = lifecycle.submit(device_intent, awake_context).to_dict()
        assert data["disposition"] == "denied"
        assert data["released"] is False
        assert data["intent"]["id"] == device_intent.id


# -----------------------------------------------------------------------------
# Test: Propose
# -----------------------------------------------------------------------------
class TestPropose:
    def test_propose_records_generation(self, lifecycle, awake_context):
        decision = lifecycle.propose("time.query", 0.95, {}, "User asking about current time", awake_context)
        assert decision.released is True
        assert stages(lifecycle.audit, decision.intent.id) == [
            ("generator", "generated"),
            ("policy", "authorized"),
            ("context", "approved"),
        ]

    def test_propose_below_floor_rejected(self, lifecycle, awake_context):
        with pytest.raises(InvalidIntent):
            lifecycle.propose("device.control", 0.3, {}, "Unsure", awake_context)
        (record,) = lifecycle.audit.records()
        assert record.intent_id is None
        assert record.intent_type == "device.control"
        assert record.disposition == IntentDisposition.REJECTED.value

    def test_propose_unserializable_parameters_rejected(self, lifecycle, awake_context):
        with pytest.raises(InvalidIntent) as exc_info:
            lifecycle.propose(
                "reminder.create",
                0.9,
                {"at": datetime(2026, 1, 1, tzinfo=timezone.utc)},
                "Remind",
                awake_context,
            )
        assert exc_info.value.field == "parameters"
        (record,) = lifecycle.audit.records()
        assert record.stage == AuditStage.GENERATOR.value
        assert record.disposition == IntentDisposition.REJECTED.value
        assert record.intent_type == "reminder.create"


# -----------------------------------------------------------------------------
# Test: Process Text
# -----------------------------------------------------------------------------
class TestProcessText:
    def test_weather_and_device(self, lifecycle, awake_context):
        result = lifecycle.process_text("turn on the lamp and what's the weather", awake_context)
        assert result.response_text == "The weather is sunny today."
        assert [d.intent.intent_type for d in result.decisions] == ["device.control", "weather.query"]
        assert [i.intent_type for i in result.released] == ["weather.query"]
        assert result.requires_permission is True

    def test_without_llm(self, engine, awake_context):
        result = IntentLifecycle(policy=engine).process_text("what time is it", awake_context)
        assert result.response_text is None
        assert len(result.released) == 1

    def test_no_intents(self, lifecycle, awake_context):
        result = lifecycle.process_text("hello", awake_context)
        assert result.decisions == []
        assert result.response_text is not None

    def test_prompt_carries_context_summary(self, lifecycle, awake_context):
        lifecycle.process_text("hello", awake_context)
        prompt = lifecycle.llm.prompts[-1]
        assert "User: test-user-123" in prompt
        assert "Activity: working" in prompt
        assert prompt.endswith("User input: hello")

    def test_audit_jsonl(self, lifecycle, awake_context):
        lifecycle.process_text("what's the weather", awake_context)
        lines = lifecycle.audit.to_jsonl().splitlines()
        assert len(lines) == 3
        assert [json.loads(line)["stage"] for line in lines] == ["generator", "policy", "context"]


# -----------------------------------------------------------------------------
# Test: Collaborator Doubles
# -----------------------------------------------------------------------------
class TestProviders:
    def test_mock_llm_usage(self):
        llm = MockLLMProvider()
        response = llm.complete("what time is it", LLMOptions())
        assert response.text == "It is currently 3:00 PM."
        assert response.finish_reason == "stop"
        assert response.usage.prompt_tokens == 4
        assert response.usage.total_tokens == 4 + len(response.text.split())
        assert llm.prompts == ["what time is it"]

    def test_llm_options_defaults(self):
        options = LLMOptions()
        assert options.temperature == 0.7
        assert options.max_tokens == 500

    def test_doubles_satisfy_interfaces(self, awake_context):
        assert isinstance(MockLLMProvider(), LLMProvider)
        assert isinstance(InMemoryStorage(), StorageProvider)
        assert isinstance(StaticContextSupplier(awake_context), ContextSupplier)

    def test_storage_copies_values(self):
        storage = InMemoryStorage()
        value = {"a": [1]}
        storage.put("ns", "k", value)
        value["a"].append(2)
        assert storage.get("ns", "k") == {"a": [1]}
        assert storage.get("ns", "missing", "default") == "default"
        assert storage.query("ns") == [{"a": [1]}]
        assert storage.query("other") == []
