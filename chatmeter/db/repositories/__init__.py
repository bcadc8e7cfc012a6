"""Database repositories for data access."""

from chatmeter.db.repositories.attachments import create_attachment, get_ready_attachments
from chatmeter.db.repositories.catalog import (
    get_enabled_fallback,
    get_enabled_model,
    is_model_allowed_for_plan,
    list_models_for_plan,
)
from chatmeter.db.repositories.chats import (
    build_chat_title,
    count_chat_messages,
    create_chat,
    create_message,
    get_chat_messages,
    get_recent_messages,
    get_user_chat,
    list_user_chats,
    update_chat_title,
)
from chatmeter.db.repositories.memory import (
    get_summary,
    list_recent_facts,
    upsert_fact,
    upsert_summary,
)
from chatmeter.db.repositories.quota import (
    append_ledger_entry,
    get_daily_counter,
    get_monthly_counter,
    increment_daily_counter,
    increment_monthly_counter,
    list_ledger_entries,
    set_daily_counter,
    set_monthly_counter,
    sum_ledger_for_cycle,
    sum_ledger_for_day,
)
from chatmeter.db.repositories.users import get_or_create_user, get_user_by_external_id

__all__ = [
    # Users
    "get_or_create_user",
    "get_user_by_external_id",
    # Catalog
    "get_enabled_model",
    "get_enabled_fallback",
    "is_model_allowed_for_plan",
    "list_models_for_plan",
    # Attachments
    "create_attachment",
    "get_ready_attachments",
    # Chats
    "build_chat_title",
    "count_chat_messages",
    "create_chat",
    "create_message",
    "get_chat_messages",
    "get_recent_messages",
    "get_user_chat",
    "list_user_chats",
    "update_chat_title",
    # Memory
    "get_summary",
    "list_recent_facts",
    "upsert_fact",
    "upsert_summary",
    # Usage
    "append_ledger_entry",
    "get_daily_counter",
    "get_monthly_counter",
    "increment_daily_counter",
    "increment_monthly_counter",
    "list_ledger_entries",
    "set_daily_counter",
    "set_monthly_counter",
    "sum_ledger_for_cycle",
    "sum_ledger_for_day",
]
