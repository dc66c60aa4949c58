"""
Pytest configuration and fixtures.
"""

import copy
import io
import json
from pathlib import Path
import sys
from typing import Any, Dict, List, Optional

import pytest

# Add project root to path (for the cli package)
sys.path.insert(0, str(Path(__file__).parent.parent))

from insurance_ai.assistant.inquiries import InsurerInquiryService
from insurance_ai.assistant.models import ModelTurn, StreamChunk, ToolCall
from insurance_ai.core.email_service import EmailReceipt
from insurance_ai.core.gateway import ModelGateway
from insurance_ai.errors import ContextNotFoundError, EmailDeliveryError


class StubGateway(ModelGateway):
    """
    Scripted model gateway.

    Orchestration calls pop the next scripted ModelTurn (an Exception in the script is raised).
    Calls carrying a document attachment are answered with document_answer and recorded
    separately, so tool executions don't consume the script.
    """

    def __init__(
        self,
        turns: Optional[List[Any]] = None,
        json_responses: Optional[List[Any]] = None,
        document_answer: str = "deductible is $500",
    ):
        self.turns = list(turns or [])
        self.json_responses = list(json_responses or [])
        self.document_answer = document_answer
        self.calls: List[Dict[str, Any]] = []
        self.document_calls: List[List[Dict[str, Any]]] = []
        self.json_calls: List[List[Dict[str, Any]]] = []

    @staticmethod
    def _has_document(messages):
        return any(isinstance(m.get("content"), list) for m in messages)

    def _next_turn(self, messages, tools):
        if self._has_document(messages):
            self.document_calls.append(copy.deepcopy(messages))
            return ModelTurn(text=self.document_answer)

        self.calls.append({"messages": copy.deepcopy(messages), "tools": tools})
        if not self.turns:
            raise AssertionError("StubGateway ran out of scripted turns")
        turn = self.turns.pop(0)
        if isinstance(turn, Exception):
            raise turn
        return turn

    def complete(self, messages, tools=None, temperature=0.2):
        return self._next_turn(messages, tools)

    def stream(self, messages, tools=None, temperature=0.2):
        turn = self._next_turn(messages, tools)
        text = turn.text or ""
        for i in range(0, len(text), 5):
            yield StreamChunk(delta=text[i:i + 5])
        yield StreamChunk(turn=turn)

    def generate_json(self, messages, schema, temperature=0.1):
        self.json_calls.append(copy.deepcopy(messages))
        if not self.json_responses:
            raise AssertionError("StubGateway ran out of scripted JSON responses")
        response = self.json_responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    def document_part(self, url):
        return {"type": "image_url", "image_url": {"url": url}}


class FakeFile(io.BytesIO):
    """Stand-in for a GridFS GridOut."""

    def __init__(self, data: bytes, filename: str, content_type: str):
        super().__init__(data)
        self.filename = filename
        self.content_type = content_type


class FakeStore:
    """In-memory DocumentStore with the same query / mutation surface."""

    public_base_url = "http://testserver"

    def __init__(self):
        self.policies: Dict[str, Dict[str, Any]] = {}
        self.customers: Dict[str, Dict[str, Any]] = {}
        self.insurers: Dict[str, Dict[str, Any]] = {}
        self.files: Dict[str, FakeFile] = {}
        self.inquiries: List[Dict[str, Any]] = []
        self.healthy = True

    def ping(self):
        return self.healthy

    def get_policy(self, policy_id):
        return copy.deepcopy(self.policies.get(policy_id))

    def list_policies(self):
        return copy.deepcopy(list(self.policies.values()))

    def get_customer_by_user_id(self, user_id):
        for customer in self.customers.values():
            if customer.get("userId") == user_id:
                return copy.deepcopy(customer)
        return None

    def get_insurer(self, insurer_id):
        return copy.deepcopy(self.insurers.get(insurer_id))

    def get_insurer_by_user_id(self, user_id):
        for insurer in self.insurers.values():
            if insurer.get("userId") == user_id:
                return copy.deepcopy(insurer)
        return None

    def customers_with_past_policies(self):
        return [copy.deepcopy(c) for c in self.customers.values() if c.get("pastPolicies")]

    def add_past_policy(self, customer_id, policy):
        customer = self.customers.get(customer_id)
        if customer is None:
            raise ContextNotFoundError("Customer not found")
        customer.setdefault("pastPolicies", []).append(policy)
        total = len(customer["pastPolicies"])
        return {"customerId": customer_id, "addedPolicy": policy, "totalPolicies": total, "policyIndex": total - 1}

    def add_policy(self, insurer_id, policy):
        if insurer_id not in self.insurers:
            raise ContextNotFoundError("Insurer not found")
        policy_id = f"policy{len(self.policies) + 1}"
        self.policies[policy_id] = dict(policy, _id=policy_id, insurer=insurer_id)
        self.insurers[insurer_id].setdefault("policies", []).append(policy)
        return policy_id

    def update_recommended_policies(self, customer_id, recommendations):
        if customer_id not in self.customers:
            raise ContextNotFoundError("Customer not found")
        self.customers[customer_id]["recommendedPolicies"] = recommendations
        return {"customerId": customer_id, "recommendedPoliciesCount": len(recommendations)}

    def record_inquiry(self, inquiry):
        self.inquiries.append(dict(inquiry, status="pending"))
        return f"inquiry{len(self.inquiries)}"

    def save_file(self, data, filename, content_type="application/pdf"):
        storage_id = f"file{len(self.files) + 1}"
        self.files[storage_id] = FakeFile(data, filename, content_type)
        return storage_id

    def open_file(self, storage_id):
        stored = self.files.get(storage_id)
        if stored is None:
            return None
        return FakeFile(stored.getvalue(), stored.filename, stored.content_type)

    def get_upload_url(self):
        return f"{self.public_base_url}/api/files"

    def get_download_url(self, storage_id):
        if storage_id not in self.files:
            return None
        return f"{self.public_base_url}/api/files/{storage_id}"


class FakeNotifier:
    """Records emails instead of sending them."""

    def __init__(self, fail: bool = False, provider: str = "sendgrid"):
        self.fail = fail
        self.provider = provider
        self.sent: List[Dict[str, Any]] = []

    def send(self, to, subject, text, html=None, reply_to=None, cc=None, bcc=None):
        if not to or not subject or not text:
            raise ValueError("Missing required fields: to, subject, or text")
        if self.fail:
            raise EmailDeliveryError("Failed to send email after 3 attempts: connection refused")
        self.sent.append({"to": to, "subject": subject, "text": text, "html": html, "reply_to": reply_to})
        return EmailReceipt(message_id=f"<msg{len(self.sent)}@test>", provider=self.provider)


def tool_turn(name: str, arguments: Dict[str, Any], call_id: str = "call_1", text: Optional[str] = None) -> ModelTurn:
    """A model turn requesting one tool call."""
    return ModelTurn(text=text, tool_calls=[ToolCall(id=call_id, name=name, arguments=json.dumps(arguments))])


@pytest.fixture
def store():
    """Store seeded with one insurer, one policy and one customer."""
    store = FakeStore()
    store.save_file(b"%PDF-1.4 policy wording", "health-plus.pdf")
    store.insurers["insurer1"] = {
        "_id": "insurer1",
        "userId": "user_insurer",
        "companyName": "Acme Health",
        "email": "support@acmehealth.example",
        "policies": [],
    }
    store.policies["policy1"] = {
        "_id": "policy1",
        "name": "Health Plus",
        "storageId": "file1",
        "insurer": "insurer1",
        "type": "health",
        "premium": "₹8,500/year",
        "years": "1",
        "sumInsured": "5L",
        "features": ["Cashless hospitalization"],
    }
    store.customers["customer1"] = {
        "_id": "customer1",
        "userId": "user_1",
        "name": "Asha Rao",
        "email": "asha@example.com",
        "age": 34,
        "pastPolicies": [],
    }
    return store


@pytest.fixture
def notifier():
    return FakeNotifier()


@pytest.fixture
def inquiries(store, notifier):
    return InsurerInquiryService(store, notifier, app_name="Insurance AI")


@pytest.fixture
def make_gateway():
    """Factory for scripted gateways: make_gateway(turns=[...], json_responses=[...])."""
    return StubGateway
