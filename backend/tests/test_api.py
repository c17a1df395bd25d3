"""
WriteUp Backend: API Endpoint Tests
===================================

What:  HTTP-level tests for every router and the global exception handlers.
How:   The module-level service singletons are patched with instances wired to
       stub adapters and in-memory stores; history uses the in-memory SQLite
       session from conftest.

What we test:
    ✅ camelCase request/response bodies
    ✅ ErrorEnvelope shape and status per error class
    ✅ X-Request-ID propagation
    ✅ Provider keys never returned unmasked
"""

from unittest.mock import MagicMock, patch

import pytest
from httpx import ASGITransport, AsyncClient

from writeup.exceptions import ProviderError
from writeup.schemas.provider import OLLAMA, OPENAI, ProviderDescriptor, ProviderUpdate
from writeup.services.chat_service import ChatService
from writeup.services.config_store import InMemoryConfigStore
from writeup.services.enhancement_service import EnhancementService
from writeup.services.privacy import PrivacyGate
from writeup.services.registry import ProviderRegistry


@pytest.fixture
def wire_enhance(build_orchestrator):
    """Patches the /api/enhance service with one built on the given adapters."""
    patchers = []

    def _wire(adapters, descriptors, excluded_apps=()):
        orchestrator, _, _ = build_orchestrator(adapters, descriptors)
        service = EnhancementService(orchestrator, PrivacyGate(list(excluded_apps)))
        patcher = patch("writeup.routes.enhance.enhancement_service", service)
        patcher.start()
        patchers.append(patcher)
        return orchestrator

    yield _wire
    for patcher in patchers:
        patcher.stop()


# ══════════════════════════════════════════════════════════════════════════
# /api/enhance
# ══════════════════════════════════════════════════════════════════════════

class TestEnhanceEndpoint:

    @pytest.mark.asyncio
    async def test_success(self, test_client, wire_enhance, stub_adapter, make_descriptor):
        wire_enhance([stub_adapter("A", reply="Fixed text.")], [make_descriptor("A")])

        response = await test_client.post(
            "/api/enhance",
            json={"text": "fixd text", "options": {"type": "grammar", "maxVariants": 2}},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["provider"] == "A"
        assert body["original"] == "fixd text"
        assert body["suggestions"][0] == {
            "text": "Fixed text.",
            "type": "grammar",
            "confidence": 0.9,
            "changes": [],
        }
        assert body["tokensUsed"] == 12
        assert "processingTime" in body
        assert response.headers["X-Request-ID"]

    @pytest.mark.asyncio
    async def test_request_id_is_echoed(self, test_client, wire_enhance, stub_adapter, make_descriptor):
        wire_enhance([stub_adapter("A")], [make_descriptor("A")])

        response = await test_client.post(
            "/api/enhance", json={"text": ""}, headers={"X-Request-ID": "abc12345"}
        )

        assert response.headers["X-Request-ID"] == "abc12345"
        assert response.json()["requestId"] == "abc12345"

    @pytest.mark.asyncio
    async def test_no_text_selected(self, test_client, wire_enhance, stub_adapter, make_descriptor):
        wire_enhance([stub_adapter("A")], [make_descriptor("A")])

        response = await test_client.post("/api/enhance", json={"text": "   "})

        assert response.status_code == 400
        body = response.json()
        assert body["code"] == "NO_TEXT_SELECTED"
        assert body["textLength"] == 0
        assert body["enhancementType"] == "rephrase"
        assert body["userAction"] == "Select text before pressing the shortcut key"
        assert "processingTime" in body

    @pytest.mark.asyncio
    async def test_sensitive_data(self, test_client, wire_enhance, stub_adapter, make_descriptor):
        adapter = stub_adapter("A")
        wire_enhance([adapter], [make_descriptor("A")])

        response = await test_client.post("/api/enhance", json={"text": "SSN 123-45-6789"})

        assert response.status_code == 400
        assert response.json()["code"] == "SENSITIVE_DATA"
        assert adapter.calls == []

    @pytest.mark.asyncio
    async def test_excluded_app(self, test_client, wire_enhance, stub_adapter, make_descriptor):
        wire_enhance([stub_adapter("A")], [make_descriptor("A")], excluded_apps=["Vault"])

        response = await test_client.post(
            "/api/enhance",
            json={"text": "secret note", "capture": {"text": "secret note", "capturedFrom": "Vault"}},
        )

        assert response.status_code == 400
        assert response.json()["code"] == "EXCLUDED_APP"

    @pytest.mark.asyncio
    async def test_no_providers(self, test_client, wire_enhance, stub_adapter, make_descriptor):
        wire_enhance([stub_adapter("A")], [make_descriptor("A", enabled=False)])

        response = await test_client.post("/api/enhance", json={"text": "hello"})

        assert response.status_code == 503
        body = response.json()
        assert body["code"] == "NO_PROVIDERS_AVAILABLE"
        assert body["textLength"] == 5
        assert "errors" not in body

    @pytest.mark.asyncio
    async def test_all_providers_failed(self, test_client, wire_enhance, stub_adapter, make_descriptor):
        wire_enhance(
            [
                stub_adapter("A", error=ProviderError("A enhancement failed: invalid api key", provider="A")),
                stub_adapter(OLLAMA, needs_key=False, error=ProviderError(
                    "Ollama (Local) enhancement failed: Connection refused", provider=OLLAMA
                )),
            ],
            [make_descriptor("A", 1), make_descriptor(OLLAMA, 2, api_key="")],
        )

        response = await test_client.post("/api/enhance", json={"text": "hello"})

        assert response.status_code == 503
        body = response.json()
        assert body["code"] == "ALL_PROVIDERS_FAILED"
        assert [e["provider"] for e in body["errors"]] == ["A", OLLAMA]
        assert "invalid api key" in body["errors"][0]["error"]
        assert "timestamp" in body["errors"][0]
        assert body["userAction"] == "Check your API key in Settings"
        assert "Ensure Ollama is running (ollama serve)" in body["troubleshooting"]

    @pytest.mark.asyncio
    async def test_unexpected_error_is_generic_500(self):
        from writeup.main import app

        service = MagicMock()
        service.enhance.side_effect = RuntimeError("secret internals")
        transport = ASGITransport(app=app, raise_app_exceptions=False)

        with patch("writeup.routes.enhance.enhancement_service", service):
            async with AsyncClient(transport=transport, base_url="http://test") as client:
                response = await client.post("/api/enhance", json={"text": "hello"})

        assert response.status_code == 500
        body = response.json()
        assert body["code"] == "INTERNAL_ERROR"
        assert "secret internals" not in body["error"]


# ══════════════════════════════════════════════════════════════════════════
# /api/chat
# ══════════════════════════════════════════════════════════════════════════

class TestChatEndpoints:

    @pytest.fixture
    def chat_adapter(self, build_orchestrator, stub_chat_adapter, make_descriptor):
        adapter = stub_chat_adapter("Chatty", reply="Hi there!")
        orchestrator, _, _ = build_orchestrator([adapter], [make_descriptor("Chatty")])
        with patch("writeup.routes.chat.chat_service", ChatService(orchestrator)):
            yield adapter

    @pytest.mark.asyncio
    async def test_send_message(self, test_client, chat_adapter):
        response = await test_client.post(
            "/api/chat",
            json={
                "message": "Hello",
                "conversationHistory": [
                    {"role": "user", "content": "earlier"},
                    {"role": "assistant", "content": "reply"},
                ],
            },
        )

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Hi there!"
        assert body["provider"] == "Chatty"
        assert body["finishReason"] == "stop"
        assert body["messageId"].startswith("msg_")

        _, messages, _ = chat_adapter.calls[0]
        assert [m.role for m in messages] == ["system", "user", "assistant", "user"]

    @pytest.mark.asyncio
    async def test_empty_message_rejected(self, test_client, chat_adapter):
        response = await test_client.post("/api/chat", json={"message": ""})

        assert response.status_code == 422
        assert chat_adapter.calls == []

    @pytest.mark.asyncio
    async def test_config_roundtrip(self, test_client, chat_adapter):
        updated = await test_client.put("/api/chat/config", json={"responseStyle": "concise"})
        current = await test_client.get("/api/chat/config")

        assert updated.json()["responseStyle"] == "concise"
        assert current.json()["responseStyle"] == "concise"
        assert current.json()["tone"] == "friendly"

    @pytest.mark.asyncio
    async def test_presets(self, test_client, chat_adapter):
        listing = await test_client.get("/api/chat/presets")
        applied = await test_client.post("/api/chat/presets/debuggingHelper")
        missing = await test_client.post("/api/chat/presets/nope")

        assert len(listing.json()) == 10
        assert applied.json()["temperature"] == 0.2
        assert missing.status_code == 404
        assert missing.json()["code"] == "NOT_FOUND"

    @pytest.mark.asyncio
    async def test_export(self, test_client, chat_adapter):
        response = await test_client.post(
            "/api/chat/export",
            json={"messages": [{"role": "user", "content": "Hi", "timestamp": "2024-03-01T09:05:07Z"}]},
        )

        content = response.json()["content"]
        assert content.startswith("# Chat Export - ")
        assert "**You** (09:05:07):\nHi" in content


# ══════════════════════════════════════════════════════════════════════════
# /api/providers
# ══════════════════════════════════════════════════════════════════════════

class TestProviderEndpoints:

    @pytest.fixture
    def wired(self, stub_adapter):
        store = InMemoryConfigStore(
            [
                ProviderDescriptor(name="A", api_key="sk-abcdef123456", model="m", enabled=True),
                ProviderDescriptor(name="Slow", api_key="k", enabled=True, priority=2),
            ]
        )
        adapters = {"A": stub_adapter("A"), "Slow": stub_adapter("Slow", delay=5)}
        registry = ProviderRegistry(store, list(adapters.values()))
        mock_settings = MagicMock()
        mock_settings.test_connection_timeout_seconds = 0.05
        with patch("writeup.routes.providers.config_store", store), \
             patch("writeup.routes.providers.provider_registry", registry), \
             patch("writeup.routes.providers.settings", mock_settings):
            yield store, adapters

    @pytest.mark.asyncio
    async def test_list_masks_keys(self, test_client, wired):
        response = await test_client.get("/api/providers")

        body = response.json()
        assert body[0]["name"] == "A"
        assert body[0]["apiKey"] == "****3456"
        assert body[0]["hasApiKey"] is True
        assert "sk-abcdef123456" not in response.text

    @pytest.mark.asyncio
    async def test_save_partial(self, test_client, wired):
        store, _ = wired

        response = await test_client.put("/api/providers/A", json={"priority": 4})

        assert response.status_code == 200
        assert response.json()["priority"] == 4
        saved = await store.get_provider("A")
        assert saved.api_key == "sk-abcdef123456"

    @pytest.mark.asyncio
    async def test_save_rejects_zero_priority(self, test_client, wired):
        response = await test_client.put("/api/providers/A", json={"priority": 0})

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_connection_test(self, test_client, wired):
        _, adapters = wired

        response = await test_client.post("/api/providers/A/test")

        assert response.json()["success"] is True
        assert adapters["A"].api_key == "sk-abcdef123456"

    @pytest.mark.asyncio
    async def test_connection_test_timeout(self, test_client, wired):
        response = await test_client.post("/api/providers/Slow/test")

        assert response.json() == {"success": False, "error": "Request timeout"}

    @pytest.mark.asyncio
    async def test_connection_test_unknown(self, test_client, wired):
        response = await test_client.post("/api/providers/Nope/test")

        assert response.status_code == 200
        assert response.json() == {"success": False, "error": "Provider not found"}

    @pytest.mark.asyncio
    async def test_status(self, test_client, wired):
        response = await test_client.get("/api/providers/status")

        assert {s["name"]: s["configured"] for s in response.json()} == {"A": True, "Slow": True}


# ══════════════════════════════════════════════════════════════════════════
# /api/history
# ══════════════════════════════════════════════════════════════════════════

class TestHistoryEndpoints:

    async def add(self, client, **overrides):
        payload = {
            "original": "teh cat",
            "enhanced": "The cat",
            "type": "grammar",
            "provider": "OpenAI",
            "processingTime": 120.5,
        }
        payload.update(overrides)
        response = await client.post("/api/history", json=payload)
        assert response.status_code == 201
        return response.json()

    @pytest.mark.asyncio
    async def test_add_and_list(self, test_client):
        created = await self.add(test_client)
        await self.add(test_client, original="hello", enhanced="Hello!", type="casual")

        response = await test_client.get("/api/history", params={"type": "grammar"})

        body = response.json()
        assert body["totalCount"] == 1
        assert body["items"][0]["id"] == created["id"]
        assert body["items"][0]["processingTime"] == 120.5

    @pytest.mark.asyncio
    async def test_favorite_and_filter(self, test_client):
        created = await self.add(test_client)
        await self.add(test_client)

        toggled = await test_client.post(f"/api/history/{created['id']}/favorite")
        favorites = await test_client.get("/api/history", params={"favoritesOnly": "true"})

        assert toggled.json()["favorite"] is True
        assert [i["id"] for i in favorites.json()["items"]] == [created["id"]]

    @pytest.mark.asyncio
    async def test_update_get_delete(self, test_client):
        created = await self.add(test_client)

        patched = await test_client.patch(f"/api/history/{created['id']}", json={"enhanced": "The cat sat."})
        fetched = await test_client.get(f"/api/history/{created['id']}")
        deleted = await test_client.delete(f"/api/history/{created['id']}")
        missing = await test_client.get(f"/api/history/{created['id']}")

        assert patched.json()["enhanced"] == "The cat sat."
        assert fetched.json()["enhanced"] == "The cat sat."
        assert deleted.status_code == 204
        assert missing.status_code == 404

    @pytest.mark.asyncio
    async def test_stats_export_clear(self, test_client):
        await self.add(test_client)
        await self.add(test_client, provider="Anthropic", processingTime=79.5)

        stats = await test_client.get("/api/history/stats")
        exported = await test_client.get("/api/history/export", params={"format": "csv"})
        cleared = await test_client.delete("/api/history")

        assert stats.json()["byProvider"] == {"OpenAI": 1, "Anthropic": 1}
        assert stats.json()["averageProcessingTime"] == 100.0
        assert exported.headers["content-type"].startswith("text/csv")
        assert "writeup-history.csv" in exported.headers["content-disposition"]
        assert exported.text.splitlines()[0].startswith("id,timestamp,type,provider")
        assert cleared.json() == {"deleted": 2}

    @pytest.mark.asyncio
    async def test_invalid_export_format(self, test_client):
        response = await test_client.get("/api/history/export", params={"format": "xml"})

        assert response.status_code == 422


# ══════════════════════════════════════════════════════════════════════════
# /api/privacy and /health
# ══════════════════════════════════════════════════════════════════════════

class TestPrivacyEndpoints:

    @pytest.mark.asyncio
    async def test_excluded_apps_crud(self, test_client):
        store = InMemoryConfigStore()
        with patch("writeup.routes.privacy.privacy_gate", PrivacyGate(["Vault"], store=store)):
            added = await test_client.post("/api/privacy/excluded-apps", json={"appName": "Keychain"})
            removed = await test_client.delete("/api/privacy/excluded-apps/Vault")
            replaced = await test_client.put("/api/privacy/excluded-apps", json={"apps": ["X", "X", "Y"]})
            listed = await test_client.get("/api/privacy/excluded-apps")

        assert added.json() == {"apps": ["Vault", "Keychain"]}
        assert removed.json() == {"apps": ["Keychain"]}
        assert replaced.json() == {"apps": ["X", "Y"]}
        assert listed.json() == {"apps": ["X", "Y"]}
        assert await store.get_excluded_apps() == ["X", "Y"]

    @pytest.mark.asyncio
    async def test_added_app_survives_restart(self, test_client):
        store = InMemoryConfigStore()
        with patch("writeup.routes.privacy.privacy_gate", PrivacyGate(store=store)):
            await test_client.post("/api/privacy/excluded-apps", json={"appName": "Keychain"})

        restarted = PrivacyGate(store=store)
        await restarted.load()
        with patch("writeup.routes.privacy.privacy_gate", restarted):
            listed = await test_client.get("/api/privacy/excluded-apps")

        assert "Keychain" in listed.json()["apps"]
        assert "1Password" in listed.json()["apps"]


class TestHealthEndpoint:

    @pytest.mark.asyncio
    async def test_degraded_without_providers(self, test_client):
        registry = ProviderRegistry(InMemoryConfigStore())
        with patch("writeup.routes.health.provider_registry", registry):
            response = await test_client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "degraded"
        assert body["database"] == "connected"
        assert len(body["providers"]) == 4
        assert "uptimeSeconds" in body

    @pytest.mark.asyncio
    async def test_healthy_with_a_configured_provider(self, test_client):
        store = InMemoryConfigStore()
        await store.save_provider(OPENAI, ProviderUpdate(api_key="sk-test"))
        registry = ProviderRegistry(store)
        with patch("writeup.routes.health.provider_registry", registry):
            response = await test_client.get("/health")

        assert response.json()["status"] == "healthy"
