"""Tests for import chains and module integrity.

Ensures all public modules can be imported without errors and
that re-exports from __init__.py files work correctly.
"""


class TestSchemaImports:
    def test_import_conversation_schema(self):
        from booking_engine.schemas.conversation_schema import (
            ChatMessage, ConversationRecord, Role, Channel, ConversationStatus,
        )
        assert Role.ASSISTANT == "assistant"
        assert Channel.WIDGET == "widget"
        assert ConversationStatus.ACTIVE == "active"

    def test_import_booking_schema(self):
        from booking_engine.schemas.booking_schema import Activity, BookingSlots
        assert BookingSlots().is_empty()

    def test_import_agent_schema(self):
        from booking_engine.schemas.agent_schema import Agent, AgentConfig, AgentSystemConfig, FAQ
        agent = Agent(id="a", organization_id="o", name="n")
        assert agent.config.show_prices is True


class TestConversationImports:
    def test_package_reexports(self):
        from booking_engine.conversation import (
            EntityExtractor, SessionStateMachine, SessionState, SlotName,
            apply_patch, extract_entities, get_next_empty_slot,
        )
        assert SessionStateMachine().current_state == SessionState.INITIALIZING
        assert SlotName.CONTACT == "customer_email"

    def test_import_session(self):
        from booking_engine.conversation.session import ConversationSession, LivenessToken
        token = LivenessToken()
        token.cancel()
        assert not token.alive

    def test_import_fallback(self):
        from booking_engine.conversation.fallback import respond, TROUBLE_MESSAGE
        assert TROUBLE_MESSAGE


class TestToolImports:
    def test_import_activities(self):
        from booking_engine.tools.activities import ACTIVITY_CATALOG, find_activity
        assert len(ACTIVITY_CATALOG) >= 5
        assert find_activity("act_mystery_mansion").name == "Mystery Mansion"

    def test_import_model_gateway(self):
        from booking_engine.tools.model_gateway import GatewayError, ModelGateway, OpenAIChatGateway
        assert issubclass(OpenAIChatGateway, ModelGateway)

    def test_import_persistence(self):
        from booking_engine.tools.persistence import ConversationStore, InMemoryConversationStore
        assert issubclass(InMemoryConversationStore, ConversationStore)


class TestPromptImports:
    def test_import_system_prompts(self):
        from booking_engine.prompts.system_prompts import CHECKOUT_MARKER, compose_system_prompt
        assert CHECKOUT_MARKER == "[CHECKOUT_READY]"


class TestEntryPoints:
    def test_import_console_demo(self):
        from console_demo import ConsoleSession
        assert "booking" in ConsoleSession.SCENARIOS
