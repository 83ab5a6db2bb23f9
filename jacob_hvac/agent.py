"""Conversational turn orchestrator for the scheduling assistant.

Architecture:
  Each customer message runs one pass through a small LangGraph
  ``StateGraph``:

    1. **model**              - the chat model, with the single
                                ``check_availability`` tool bound, decides
                                whether it needs calendar data
    2. **check_availability** - validates the tool arguments and queries the
                                availability surface once for the whole range
    3. **final_answer**       - the model is called again with the tool result
                                and its text becomes the reply

  Routing:
    model -> (tool call?)    -> check_availability -> final_answer -> END
          -> (no tool call?) -> END

  There is no edge back into ``model``, so a turn makes at most one tool
  round trip.  The ``final_answer`` call is bound with tool choice
  ``none``; any tool call that still comes back is ignored.

  Memory:
    The graph itself is stateless.  Conversation history lives in the
    database (:class:`ChatSessionStore`); every turn replays the full
    transcript to the model.
"""

from __future__ import annotations

import json
import logging
from typing import Annotated

import anthropic
from langchain_anthropic import ChatAnthropic
from langchain_core.language_models import BaseChatModel
from langchain_core.messages import (
    AIMessage,
    AnyMessage,
    BaseMessage,
    HumanMessage,
    SystemMessage,
    ToolMessage,
)
from langgraph.graph import END, StateGraph
from langgraph.graph.message import add_messages
from sqlalchemy.orm import Session, sessionmaker
from typing_extensions import TypedDict

from jacob_hvac.config import Settings
from jacob_hvac.db import session_scope
from jacob_hvac.errors import ModelUnavailableError, UpstreamError, ValidationError
from jacob_hvac.models import ChatMessage, MessageSender
from jacob_hvac.prompts import (
    CHAT_NOT_CONFIGURED_MESSAGE,
    MODEL_UNAVAILABLE_MESSAGE,
    get_system_prompt,
)
from jacob_hvac.services.availability_client import AvailabilityLookup
from jacob_hvac.services.chat_store import ChatSessionStore
from jacob_hvac.services.metrics import metrics
from jacob_hvac.tools.availability import (
    CHECK_AVAILABILITY_TOOL,
    TOOL_NAME,
    parse_tool_args,
    run_check_availability,
)

logger = logging.getLogger(__name__)

MODEL_REQUEST_TIMEOUT_SECONDS = 60.0

EMPTY_ANSWER_MESSAGE = (
    "I looked at our calendar but couldn't put an answer together. "
    "Could you tell me which days work best for you?"
)

# Backend failures that count as "unreachable" and degrade the turn
# instead of failing it.  Other API errors (rate limits, rejected keys)
# surface as UpstreamError.
_UNREACHABLE_ERRORS = (anthropic.APIConnectionError, anthropic.InternalServerError)


# ── State schema ─────────────────────────────────────────────────────


class TurnState(TypedDict):
    """Messages for one turn: system prompt, transcript, then model/tool output."""

    messages: Annotated[list[AnyMessage], add_messages]


# ── Helpers ──────────────────────────────────────────────────────────


def build_chat_model(settings: Settings) -> ChatAnthropic | None:
    """Return the Anthropic chat model, or ``None`` when no API key is set."""
    if not settings.chat_enabled:
        return None
    return ChatAnthropic(
        model=settings.model_name,
        api_key=settings.anthropic_api_key,
        temperature=settings.model_temperature,
        max_tokens=settings.model_max_tokens,
        timeout=MODEL_REQUEST_TIMEOUT_SECONDS,
        max_retries=1,
    )


def message_text(message: BaseMessage) -> str:
    """Plain text of a model message (Anthropic may return content blocks)."""
    content = message.content
    if isinstance(content, str):
        return content.strip()
    parts = []
    for block in content:
        if isinstance(block, str):
            parts.append(block)
        elif isinstance(block, dict) and block.get("type") == "text":
            parts.append(block.get("text", ""))
    return "".join(parts).strip()


def to_model_message(message: ChatMessage) -> BaseMessage:
    if message.sender == MessageSender.ASSISTANT.value:
        return AIMessage(content=message.text)
    return HumanMessage(content=message.text)


def _invoke_model(llm, messages: list[AnyMessage], operation: str) -> AIMessage:
    with metrics.track("anthropic", operation):
        try:
            return llm.invoke(messages)
        except _UNREACHABLE_ERRORS as exc:
            raise ModelUnavailableError(f"Model backend unreachable: {exc}") from exc
        except anthropic.APIError as exc:
            raise UpstreamError(
                f"Model backend error: {exc}", status_code=getattr(exc, "status_code", None),
            ) from exc


# ── Nodes ────────────────────────────────────────────────────────────


def _make_model_node(llm_with_tools):
    def model_node(state: TurnState) -> dict:
        response = _invoke_model(llm_with_tools, state["messages"], "tool_turn")
        return {"messages": [response]}

    return model_node


def _make_check_availability_node(lookup: AvailabilityLookup):
    """Execute the first ``check_availability`` call; answer any others as skipped.

    Every tool call needs a matching tool result before the model can be
    called again, so extra calls still get a (non-executed) reply.  Invalid
    arguments are answered with an error result the model can react to;
    only failures of the lookup itself propagate.
    """

    def check_availability_node(state: TurnState) -> dict:
        last_message = state["messages"][-1]
        results: list[ToolMessage] = []
        executed = False
        for call in last_message.tool_calls:
            if call["name"] != TOOL_NAME:
                content = json.dumps({"error": f"Unknown tool {call['name']!r}."})
            elif executed:
                content = json.dumps(
                    {"error": "Only one availability check runs per message; this call was skipped."}
                )
            else:
                try:
                    start, end = parse_tool_args(call.get("args"))
                except ValidationError as exc:
                    logger.warning("Rejected %s arguments %r: %s", TOOL_NAME, call.get("args"), exc)
                    content = json.dumps({"error": str(exc)})
                else:
                    content = run_check_availability(start, end, lookup)
                    executed = True
            results.append(
                ToolMessage(content=content, tool_call_id=call["id"], name=call["name"])
            )
        return {"messages": results}

    return check_availability_node


def _make_final_answer_node(llm_final):
    def final_answer_node(state: TurnState) -> dict:
        response = _invoke_model(llm_final, state["messages"], "final_answer")
        if getattr(response, "tool_calls", None):
            logger.debug("Ignoring %d tool call(s) in final answer", len(response.tool_calls))
        return {"messages": [response]}

    return final_answer_node


# ── Conditional edge ─────────────────────────────────────────────────


def should_check_availability(state: TurnState) -> str:
    last_message = state["messages"][-1]
    if getattr(last_message, "tool_calls", None):
        return "check_availability"
    return END


# ── Graph assembly ───────────────────────────────────────────────────


def build_turn_graph(llm: BaseChatModel, lookup: AvailabilityLookup):
    """Compile the per-turn state machine around *llm* and *lookup*."""
    llm_with_tools = llm.bind_tools([CHECK_AVAILABILITY_TOOL])
    # The tool stays declared for the transcript, but no new call may be made.
    llm_final = llm.bind_tools([CHECK_AVAILABILITY_TOOL], tool_choice={"type": "none"})

    graph = StateGraph(TurnState)
    graph.add_node("model", _make_model_node(llm_with_tools))
    graph.add_node("check_availability", _make_check_availability_node(lookup))
    graph.add_node("final_answer", _make_final_answer_node(llm_final))

    graph.set_entry_point("model")
    graph.add_conditional_edges(
        "model",
        should_check_availability,
        {"check_availability": "check_availability", END: END},
    )
    graph.add_edge("check_availability", "final_answer")
    graph.add_edge("final_answer", END)
    return graph.compile()


# ── Orchestrator ─────────────────────────────────────────────────────


class TurnOrchestrator:
    """Runs one customer message through the graph and persists both sides.

    The customer message is committed before the model is called, so it
    survives a failed turn.  The assistant reply is written only when the
    turn completes; availability failures propagate and leave no reply.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        settings: Settings,
        lookup: AvailabilityLookup,
        llm: BaseChatModel | None = None,
    ):
        self._session_factory = session_factory
        self._settings = settings
        self._graph = build_turn_graph(llm, lookup) if llm is not None else None

    @property
    def configured(self) -> bool:
        return self._graph is not None

    def handle_message(self, session_id: int, text: str) -> str:
        if self._graph is None:
            logger.warning("Chat message for session %s ignored: no model configured", session_id)
            return CHAT_NOT_CONFIGURED_MESSAGE

        with session_scope(self._session_factory) as session:
            store = ChatSessionStore(session)
            store.append_message(session_id, MessageSender.CUSTOMER.value, text)
            history = store.get_history(session_id)

        prompt: list[AnyMessage] = [SystemMessage(content=get_system_prompt(self._settings))]
        prompt.extend(to_model_message(message) for message in history)

        try:
            result = self._graph.invoke({"messages": prompt})
        except ModelUnavailableError:
            logger.exception("Model backend unavailable for session %s", session_id)
            return MODEL_UNAVAILABLE_MESSAGE.format(business_phone=self._settings.business_phone)

        turn_messages = result["messages"][len(prompt):]
        tool_rounds = sum(1 for message in turn_messages if isinstance(message, ToolMessage))
        answer = message_text(turn_messages[-1]) or EMPTY_ANSWER_MESSAGE

        with session_scope(self._session_factory) as session:
            ChatSessionStore(session).append_message(
                session_id, MessageSender.ASSISTANT.value, answer,
            )
        logger.info(
            "Session %s turn complete (history=%d, tool results=%d)",
            session_id, len(history), tool_rounds,
        )
        return answer


def create_turn_orchestrator(
    session_factory: sessionmaker[Session],
    settings: Settings,
    lookup: AvailabilityLookup,
) -> TurnOrchestrator:
    """Build the orchestrator with the configured Anthropic model (if any)."""
    llm = build_chat_model(settings)
    logger.info(
        "Turn orchestrator ready - model: %s",
        settings.model_name if llm is not None else "not configured",
    )
    return TurnOrchestrator(session_factory, settings, lookup, llm=llm)
