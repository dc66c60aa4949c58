"""
Tests for the core services: retry combinator, document store and Fireworks gateway.
"""

import json
from types import SimpleNamespace

import pytest
from bson import ObjectId

from insurance_ai.config import Settings
from insurance_ai.core.document_store import DocumentStore
from insurance_ai.core.fireworks_client import FireworksGateway
from insurance_ai.core.retry import linear_backoff, with_retry
from insurance_ai.assistant.models import FeatureExtraction
from insurance_ai.errors import ContextNotFoundError, ModelGatewayError


class TestWithRetry:
    """Tests for the shared retry combinator."""

    def test_returns_first_success(self):
        outcomes = iter([ValueError("first"), "ok"])

        def operation():
            outcome = next(outcomes)
            if isinstance(outcome, Exception):
                raise outcome
            return outcome

        assert with_retry(operation, attempts=3) == "ok"

    def test_reraises_last_error(self):
        calls = []

        def operation():
            calls.append(1)
            raise ValueError(f"attempt {len(calls)}")

        with pytest.raises(ValueError, match="attempt 3"):
            with_retry(operation, attempts=3)
        assert len(calls) == 3

    def test_non_retryable_error_is_raised_immediately(self):
        calls = []

        def operation():
            calls.append(1)
            raise KeyError("permanent")

        with pytest.raises(KeyError):
            with_retry(operation, attempts=3, is_retryable=lambda e: isinstance(e, ValueError))
        assert len(calls) == 1

    def test_linear_backoff(self, mocker):
        sleep = mocker.patch("time.sleep")

        def operation():
            raise ValueError("down")

        with pytest.raises(ValueError):
            with_retry(operation, attempts=3, backoff=linear_backoff(1.5))

        assert [c.args[0] for c in sleep.call_args_list] == [1.5, 3.0]


@pytest.fixture
def mongo(mocker):
    """DocumentStore over a mocked database and GridFS bucket."""
    gridfs_class = mocker.patch("insurance_ai.core.document_store.gridfs.GridFS")
    db = mocker.MagicMock()
    collection = mocker.MagicMock()
    db.__getitem__.return_value = collection
    store = DocumentStore(db, "https://api.example.com/")
    return SimpleNamespace(store=store, db=db, collection=collection, files=gridfs_class.return_value)


class TestDocumentStore:
    """Tests for DocumentStore against a mocked MongoDB."""

    def test_get_policy_serializes_id(self, mongo):
        oid = ObjectId()
        mongo.collection.find_one.return_value = {"_id": oid, "name": "Health Plus"}

        policy = mongo.store.get_policy(str(oid))

        assert policy == {"_id": str(oid), "name": "Health Plus"}
        mongo.collection.find_one.assert_called_once_with({"_id": oid})

    def test_get_policy_invalid_id(self, mongo):
        assert mongo.store.get_policy("not-an-object-id") is None
        mongo.collection.find_one.assert_not_called()

    def test_add_past_policy(self, mongo):
        customer_id = str(ObjectId())
        mongo.collection.find_one_and_update.return_value = {"pastPolicies": [{}, {"name": "New"}]}

        result = mongo.store.add_past_policy(customer_id, {"name": "New"})

        assert result == {
            "customerId": customer_id,
            "addedPolicy": {"name": "New"},
            "totalPolicies": 2,
            "policyIndex": 1,
        }

    def test_add_past_policy_unknown_customer(self, mongo):
        mongo.collection.find_one_and_update.return_value = None

        with pytest.raises(ContextNotFoundError):
            mongo.store.add_past_policy(str(ObjectId()), {"name": "New"})

    def test_add_policy_defaults(self, mongo):
        insurer_id = str(ObjectId())
        mongo.collection.count_documents.return_value = 1
        mongo.collection.insert_one.return_value = SimpleNamespace(inserted_id=ObjectId())

        mongo.store.add_policy(insurer_id, {"name": "Plan", "storageId": "abc", "features": ["OPD"]})

        record = mongo.collection.insert_one.call_args[0][0]
        assert record["type"] == "health"
        assert record["premium"] == "0"
        assert record["years"] == "1"
        assert record["sumInsured"] == "0"
        assert record["insurer"] == insurer_id
        pushed = mongo.collection.update_one.call_args[0][1]["$push"]["policies"]
        assert pushed["name"] == "Plan"

    def test_add_policy_unknown_insurer(self, mongo):
        mongo.collection.count_documents.return_value = 0

        with pytest.raises(ContextNotFoundError, match="Insurer not found"):
            mongo.store.add_policy(str(ObjectId()), {"name": "Plan", "storageId": "abc"})

    def test_record_inquiry_is_pending(self, mongo):
        mongo.collection.insert_one.return_value = SimpleNamespace(inserted_id="inq1")

        assert mongo.store.record_inquiry({"subject": "Claim"}) == "inq1"

        record = mongo.collection.insert_one.call_args[0][0]
        assert record["status"] == "pending"
        assert "createdAt" in record

    def test_download_url(self, mongo):
        storage_id = str(ObjectId())
        mongo.files.exists.return_value = True

        assert mongo.store.get_download_url(storage_id) == f"https://api.example.com/api/files/{storage_id}"

    def test_download_url_missing_file(self, mongo):
        mongo.files.exists.return_value = False

        assert mongo.store.get_download_url(str(ObjectId())) is None
        assert mongo.store.get_download_url("garbage") is None


def message(content=None, tool_calls=None):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content, tool_calls=tool_calls))])


def delta_chunk(content=None, tool_calls=None):
    return SimpleNamespace(choices=[SimpleNamespace(delta=SimpleNamespace(content=content, tool_calls=tool_calls))])


def tool_fragment(index, id=None, name=None, arguments=None):
    return SimpleNamespace(index=index, id=id, function=SimpleNamespace(name=name, arguments=arguments))


@pytest.fixture
def fireworks(mocker):
    client = mocker.MagicMock()
    settings = Settings(
        fireworks_api_key="fw-test",
        fireworks_llm_model="chat-model",
        fireworks_document_model="document-model",
        llm_timeout_seconds=15,
        llm_max_attempts=1,
    )
    return SimpleNamespace(client=client, gateway=FireworksGateway(settings, client=client))


class TestFireworksGateway:
    """Tests for FireworksGateway with a mocked Fireworks client."""

    def test_complete_text(self, fireworks):
        fireworks.client.chat.completions.create.return_value = message(content="Hello")

        turn = fireworks.gateway.complete([{"role": "user", "content": "Hi"}])

        assert turn.text == "Hello"
        assert turn.is_final
        kwargs = fireworks.client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "chat-model"
        assert kwargs["request_timeout"] == 15
        assert "tools" not in kwargs

    def test_complete_tool_calls(self, fireworks):
        call = SimpleNamespace(id="call_1", function=SimpleNamespace(name="getInfoAboutPolicy", arguments='{"prompt": "x"}'))
        fireworks.client.chat.completions.create.return_value = message(tool_calls=[call])
        tools = [{"type": "function", "function": {"name": "getInfoAboutPolicy"}}]

        turn = fireworks.gateway.complete([{"role": "user", "content": "Hi"}], tools=tools)

        assert not turn.is_final
        assert turn.tool_calls[0].name == "getInfoAboutPolicy"
        assert turn.tool_calls[0].arguments == '{"prompt": "x"}'
        assert fireworks.client.chat.completions.create.call_args.kwargs["tools"] == tools

    def test_documents_use_document_model(self, fireworks):
        fireworks.client.chat.completions.create.return_value = message(content="ok")
        gateway = fireworks.gateway

        gateway.complete([gateway.document_message("https://api.example.com/api/files/1"), {"role": "user", "content": "?"}])

        kwargs = fireworks.client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "document-model"
        part = kwargs["messages"][0]["content"][0]
        assert part == {"type": "image_url", "image_url": {"url": "https://api.example.com/api/files/1#transform=inline"}}

    def test_stream_assembles_tool_calls(self, fireworks):
        fireworks.client.chat.completions.create.return_value = iter([
            delta_chunk(content="Let me "),
            delta_chunk(content="check."),
            delta_chunk(tool_calls=[tool_fragment(0, id="call_9", name="getInfoAboutPolicy", arguments='{"pro')]),
            delta_chunk(tool_calls=[tool_fragment(0, arguments='mpt": "deductible"}')]),
        ])

        chunks = list(fireworks.gateway.stream([{"role": "user", "content": "Hi"}]))

        assert [c.delta for c in chunks[:-1]] == ["Let me ", "check."]
        turn = chunks[-1].turn
        assert turn.text == "Let me check."
        assert turn.tool_calls[0].id == "call_9"
        assert json.loads(turn.tool_calls[0].arguments) == {"prompt": "deductible"}
        assert fireworks.client.chat.completions.create.call_args.kwargs["stream"] is True

    def test_generate_json(self, fireworks):
        fireworks.client.chat.completions.create.return_value = message(content='{"features": ["OPD"]}')

        data = fireworks.gateway.generate_json([{"role": "user", "content": "?"}], FeatureExtraction)

        assert data == {"features": ["OPD"]}
        response_format = fireworks.client.chat.completions.create.call_args.kwargs["response_format"]
        assert response_format["type"] == "json_object"
        assert "features" in response_format["schema"]["properties"]

    def test_generate_json_rejects_arrays(self, fireworks):
        fireworks.client.chat.completions.create.return_value = message(content='["OPD"]')

        with pytest.raises(ValueError):
            fireworks.gateway.generate_json([{"role": "user", "content": "?"}], FeatureExtraction)

    def test_transport_failure(self, fireworks):
        fireworks.client.chat.completions.create.side_effect = ConnectionError("reset by peer")

        with pytest.raises(ModelGatewayError, match="reset by peer"):
            fireworks.gateway.complete([{"role": "user", "content": "Hi"}])
