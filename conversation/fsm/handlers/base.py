"""
Base class for per-state flow handlers.

A handler is the transition function for one ConversationState: it reads the
context and the rehydrated working memory, and returns the result for one
inbound message. Handlers never persist anything.
"""

from typing import ClassVar

from conversation.fsm.models import (
    ConversationContext,
    ConversationFlowResult,
    ConversationState,
    ConversationStateData,
    HandledResult,
    MenuTemplate,
    PatientSnapshot,
)
from shared.config import Settings


class FlowHandler:
    """
    Transition function for one conversation state.

    Attributes:
        state: State this handler owns
        context: Invocation context
        data: Working memory rehydrated from the persisted JSON
        settings: Engine settings
    """

    state: ClassVar[ConversationState]

    def __init__(
        self,
        context: ConversationContext,
        data: ConversationStateData,
        settings: Settings,
    ):
        self.context = context
        self.data = data
        self.settings = settings

    @property
    def patient(self) -> PatientSnapshot:
        return self.context.patient

    @property
    def memory(self) -> ConversationStateData | None:
        """Current working memory as it should be persisted (None when empty)."""
        return None if self.data.is_empty() else self.data

    async def handle(self, text: str) -> ConversationFlowResult:
        raise NotImplementedError

    def reprompt(self, reply: str, menu: MenuTemplate | None = None) -> HandledResult:
        """Stay in the current state with the working memory unchanged."""
        return HandledResult(
            reply=reply,
            menu=menu,
            next_state=self.state,
            state_data=self.memory,
        )
