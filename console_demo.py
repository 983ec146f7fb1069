"""
Offline console demo: runs a full booking chat without any API keys.

Drives a real ConversationSession with no model gateway, so every reply
comes from the extractor, slot store and fallback responder. No LLM, no
network calls. Designed for live demo walkthroughs.

Usage:
    python console_demo.py
    python console_demo.py --scenario booking
    python console_demo.py --scenario out_of_order
"""

import argparse
import asyncio
import sys
from typing import Optional

from booking_engine.config import settings
from booking_engine.conversation.session import ConversationSession
from booking_engine.conversation.slot_manager import SLOT_DEFINITIONS
from booking_engine.prompts.prompt_templates import describe_slot_value
from booking_engine.schemas.agent_schema import Agent, AgentConfig
from booking_engine.schemas.booking_schema import BookingSlots
from booking_engine.schemas.conversation_schema import Channel
from booking_engine.tools.activities import get_all_activities
from booking_engine.tools.model_gateway import ModelGateway

BLUE = "\033[94m"
GREEN = "\033[92m"
YELLOW = "\033[93m"
RED = "\033[91m"
DIM = "\033[2m"
RESET = "\033[0m"
BOLD = "\033[1m"

DEMO_AGENT = Agent(
    id="agent_demo",
    organization_id="org_demo",
    name="Demo Booking Assistant",
    config=AgentConfig(
        greeting=f"Hi! Welcome to {settings.business.name}. What would you like to book today?",
    ),
)


class ConsoleSession:
    """Runs a booking chat in the terminal."""

    # Pre-scripted scenarios for --scenario flag
    SCENARIOS: dict[str, list[str]] = {
        "booking": [
            "I want to book Mystery Mansion",
            "tomorrow",
            "2:30 PM",
            "4 people",
            "jane@example.com",
        ],
        "out_of_order": [
            "4 people for Mystery Mansion tomorrow at 2:30 PM",
            "jane@example.com",
        ],
    }

    MAX_INPUT_LENGTH = settings.conversation.max_input_length

    def __init__(self, gateway: Optional[ModelGateway] = None) -> None:
        self.session = ConversationSession(
            DEMO_AGENT,
            get_all_activities(),
            gateway=gateway,
            on_booking_ready=self._booking_ready,
            channel=Channel.CONSOLE,
        )
        self.checkout_ready = False

    def agent_say(self, text: str) -> None:
        print(f"{GREEN}{BOLD}[Assistant]{RESET} {GREEN}{text}{RESET}")

    def system_log(self, text: str) -> None:
        print(f"{DIM}  >> {text}{RESET}")

    def _booking_ready(self, slots: BookingSlots) -> None:
        self.checkout_ready = True
        self.system_log("Booking ready for checkout:")
        activities = self.session.activities
        for defn in SLOT_DEFINITIONS:
            value = describe_slot_value(defn.name.value, slots, activities)
            self.system_log(f"  {defn.display_name}: {value}")

    def _banner(self, title: str) -> None:
        print()
        print(f"{BOLD}{'=' * 60}{RESET}")
        print(f"{BOLD}  BOOKING ASSISTANT - {title}{RESET}")
        print(f"{BOLD}  Business: {settings.business.name}{RESET}")
        print(f"{BOLD}{'=' * 60}{RESET}")
        print()

    def _summary(self, title: str) -> None:
        trace = self.session.state_machine.get_state_trace()
        print(f"\n{BOLD}{'=' * 60}{RESET}")
        print(f"{BOLD}  {title}{RESET}")
        print(f"{DIM}  State trace: {' -> '.join(trace)}{RESET}")
        print(f"{DIM}  Slot stats: {self.session.get_stats()}{RESET}")
        print(f"{BOLD}{'=' * 60}{RESET}")

    async def _turn(self, text: str) -> None:
        reply = await self.session.send_message(text)
        if reply is not None:
            self.agent_say(reply.content)
        self.system_log(f"State: {self.session.state.value}")

    async def run_scenario(self, scenario: str) -> None:
        """Auto-play a pre-scripted scenario for demo purposes."""
        steps = self.SCENARIOS.get(scenario)
        if not steps:
            print(f"{RED}Unknown scenario: {scenario}{RESET}")
            return

        self._banner(f"Scenario: {scenario}")
        greeting = await self.session.start()
        self.agent_say(greeting.content)

        for step in steps:
            print(f"\n{BLUE}[Customer] {RESET}{step}")
            await self._turn(step)

        await self.session.close()
        self._summary(f"Scenario '{scenario}' complete.")

    async def run(self) -> None:
        self._banner("Console Demo")
        print(f"{BOLD}  Type 'quit' to exit, 'reset' to start over{RESET}\n")
        greeting = await self.session.start()
        self.agent_say(greeting.content)

        while True:
            user_input = (await asyncio.to_thread(input, f"\n{BLUE}[Customer] {RESET}")).strip()
            if not user_input:
                continue
            if user_input.lower() in ("quit", "exit", "q"):
                print(f"\n{DIM}Session ended.{RESET}")
                break
            if user_input.lower() == "reset":
                greeting = await self.session.reset()
                if greeting is not None:
                    self.agent_say(greeting.content)
                continue
            if len(user_input) > self.MAX_INPUT_LENGTH:
                self.agent_say("That was quite long. Could you keep it brief for me?")
                continue
            await self._turn(user_input)

        await self.session.close()
        self._summary("Conversation complete.")


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Offline booking assistant demo")
    parser.add_argument("--scenario", choices=sorted(ConsoleSession.SCENARIOS))
    args = parser.parse_args(argv)

    console = ConsoleSession()
    try:
        if args.scenario:
            asyncio.run(console.run_scenario(args.scenario))
        else:
            asyncio.run(console.run())
    except (KeyboardInterrupt, EOFError):
        print(f"\n{YELLOW}Interrupted.{RESET}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
