"""
Prompt construction for grounded answers
"""

from typing import List, Optional

from domain.rag.types import ContextWindow, ConversationTurn, ResponseMode
from core.config import settings

# Heading of the content block per response mode
CONTENT_HEADINGS = {
    ResponseMode.STANDARD: "Relevant Information",
    ResponseMode.DETAILED: "Comprehensive Information",
    ResponseMode.CONCISE: "Key Information",
}

USER_CONTEXT_HEADINGS = {
    ResponseMode.STANDARD: "User Context",
    ResponseMode.DETAILED: "Detailed User Context",
}

BASE_GUIDELINES = [
    "Use the relevant information provided above to answer accurately",
    "Be helpful, professional, and friendly",
    "If information is not available, say so honestly",
    "Focus on the user's specific question",
]

MODE_GUIDELINES = {
    ResponseMode.DETAILED: [
        "Provide comprehensive details and explanations",
        "Include relevant examples and additional context",
    ],
    ResponseMode.CONCISE: [
        "Keep responses brief and to the point",
        "Focus on the most essential information",
    ],
}

CLOSING_INSTRUCTIONS = {
    ResponseMode.DETAILED: "Provide a detailed, comprehensive response.",
    ResponseMode.CONCISE: "Provide a concise, direct answer.",
}

SAFETY_GUIDELINES = (
    "Safety Guidelines:\n"
    "- Never provide harmful, illegal, or inappropriate content\n"
    "- Protect customer privacy and data\n"
    "- Stay within your role as a store assistant\n"
    "- Redirect complex technical issues to human support when appropriate"
)

NO_CONTENT_NOTICE = "No relevant information was found in the store knowledge base."


class PromptBuilder:
    """
    Renders a ContextWindow into the prompt sent to the language model.

    Output is a pure function of the inputs and the store settings.
    """

    def __init__(
        self,
        store_name: Optional[str] = None,
        store_url: Optional[str] = None,
        store_currency: Optional[str] = None,
        max_context_tokens: Optional[int] = None,
        history_token_share: Optional[float] = None,
        chars_per_token: Optional[int] = None,
    ):
        self.store_name = store_name or settings.store_name
        self.store_url = settings.store_url if store_url is None else store_url
        self.store_currency = settings.store_currency if store_currency is None else store_currency
        max_context_tokens = max_context_tokens or settings.rag_max_context_tokens
        history_token_share = (
            settings.rag_history_token_share if history_token_share is None else history_token_share
        )
        chars_per_token = chars_per_token or settings.rag_chars_per_token
        self.history_char_budget = int(max_context_tokens * history_token_share * chars_per_token)

    def build(
        self,
        query: str,
        window: ContextWindow,
        history: Optional[List[ConversationTurn]] = None,
        response_mode: str = ResponseMode.STANDARD,
    ) -> str:
        """Build the full prompt text."""
        mode = response_mode if response_mode in CONTENT_HEADINGS else ResponseMode.STANDARD

        sections = [
            f"You are {self._system_role()}.",
            self._store_context(),
            f"{CONTENT_HEADINGS[mode]}:\n{self._relevant_content(window)}",
        ]

        if mode in USER_CONTEXT_HEADINGS:
            user_context = self._user_context(window)
            if user_context:
                sections.append(f"{USER_CONTEXT_HEADINGS[mode]}:\n{user_context}")

        conversation = self._conversation_history(history or [])
        if conversation:
            sections.append(f"Conversation History:\n{conversation}")

        sections.append(f"User Question: {query}")
        sections.append(self._response_guidelines(mode))
        if mode in CLOSING_INSTRUCTIONS:
            sections.append(CLOSING_INSTRUCTIONS[mode])
        sections.append(SAFETY_GUIDELINES)

        return "\n\n".join(sections)

    def _system_role(self) -> str:
        return (
            f"a helpful AI assistant for {self.store_name}, specializing in providing "
            "accurate information about products, policies, and customer service"
        )

    def _store_context(self) -> str:
        lines = [f"Store: {self.store_name}"]
        if self.store_url:
            lines.append(f"URL: {self.store_url}")
        if self.store_currency:
            lines.append(f"Currency: {self.store_currency}")
        return "\n".join(lines)

    def _relevant_content(self, window: ContextWindow) -> str:
        if not window.relevant_content:
            return NO_CONTENT_NOTICE
        blocks = []
        for index, item in enumerate(window.relevant_content, start=1):
            blocks.append(f"{index}. [{item.type.capitalize()}] {item.source}:\n{item.content}")
        return "\n\n".join(blocks)

    def _user_context(self, window: ContextWindow) -> str:
        lines = []
        if window.user_context.get("current_page"):
            lines.append(f"Current Page: {window.user_context['current_page']}")
        if window.user_context.get("user_type"):
            lines.append(f"User Type: {window.user_context['user_type']}")
        return "\n".join(lines)

    def _conversation_history(self, history: List[ConversationTurn]) -> str:
        # Most recent turns win; rendered oldest first
        kept: List[str] = []
        used = 0
        for turn in reversed(history):
            line = f"{turn.role.capitalize()}: {turn.content.strip()}"
            if used + len(line) > self.history_char_budget:
                break
            kept.append(line)
            used += len(line)
        return "\n".join(reversed(kept))

    def _response_guidelines(self, mode: str) -> str:
        guidelines = BASE_GUIDELINES + MODE_GUIDELINES.get(mode, [])
        return "Response Guidelines:\n" + "\n".join(f"- {line}" for line in guidelines)
