"""Jacob HVAC scheduling assistant.

Customers book heating and cooling service either by chatting with an AI
assistant or through a JSON booking API.  Bookings are stored in a SQL
database and confirmed by SMS.

Architecture Overview
=====================

* **Availability engine** (``services/availability.py``) - derives open
  ``HH:00`` slots from a fixed daily catalog minus the hours taken by active
  appointments.
* **Appointment ledger** (``services/ledger.py``) - creates, lists and
  updates appointments, then texts a confirmation through the
  **notification dispatcher** (``services/notifications.py``, Twilio).
* **Chat session store** (``services/chat_store.py``) - append-only
  transcripts, one row per message.
* **Turn orchestrator** (``agent.py``) - a LangGraph state machine that
  runs one customer message through Claude with a single
  ``check_availability`` tool, bounded to one tool round trip per turn.

Key Design Decisions
--------------------
- **Explicit configuration**: every component takes a ``Settings`` object
  (``config.py``) instead of reading the environment.
- **Degraded chat**: without ``ANTHROPIC_API_KEY`` (or when the backend is
  unreachable) the chat endpoint answers with a fixed message instead of
  failing.
- **Advisory conflict check**: appointment creation does not re-check the
  slot, so two bookings for one hour can both succeed.  This is a known,
  tested limitation.
- **Dual Interface**: FastAPI server (production) + CLI chat loop.

Package Structure
-----------------
- ``jacob_hvac/agent.py`` - turn orchestrator graph
- ``jacob_hvac/config.py`` - settings from environment variables
- ``jacob_hvac/db.py`` / ``models.py`` - SQLAlchemy engine and ORM models
- ``jacob_hvac/prompts.py`` - system prompt and fixed replies
- ``jacob_hvac/server.py`` - FastAPI application
- ``jacob_hvac/main.py`` - CLI chat interface
- ``jacob_hvac/services/`` - availability, ledger, chat store, SMS, metrics
- ``jacob_hvac/tools/`` - the ``check_availability`` tool schema
- ``jacob_hvac/api/`` - FastAPI routes and Pydantic schemas
"""
