"""SQL text for the reviewable migration scripts (Postgres dialect)."""
from __future__ import annotations

import re
from typing import List, Optional

from ..models import CatalogEntry, SourceRecord

_FILE_EXTENSION = re.compile(r"(?:\s*[-–—]\s*PDF)?\s*\.(?:pdf|epub|mobi|djvu)\s*$", re.IGNORECASE)


def sql_quote(value: Optional[str]) -> str:
    if value is None:
        return "NULL"
    return "'" + str(value).replace("'", "''") + "'"


def sql_bool(value: bool) -> str:
    return "true" if value else "false"


def _comment(text: str) -> str:
    # keep comments on one line so a value can never end the comment early
    return " ".join(str(text).split())


def display_title(entry: CatalogEntry) -> str:
    """Catalog name without its file extension, used as the title of a new row."""
    return _FILE_EXTENSION.sub("", entry.title).strip() or entry.title


def build_update_sql(record: SourceRecord, entry: CatalogEntry, score: float, *, table: str = "books") -> str:
    # updated_at is set explicitly: the table trigger does not fire for this bulk path
    return (
        f"-- Update: {_comment(record.title)} -> {_comment(entry.title)} ({score * 100:.0f}% match)\n"
        f"UPDATE {table}\n"
        f"SET file_url = {sql_quote(entry.url)},\n"
        f"    updated_at = NOW()\n"
        f"WHERE id = {sql_quote(record.id)}\n"
        f"  AND (file_url IS NULL OR file_url = '');"
    )


def build_insert_sql(
    entry: CatalogEntry,
    *,
    table: str = "books",
    owner_user_id: str,
    content_type: str = "pdf",
    language: str = "en",
    is_public: bool = False,
) -> str:
    title = display_title(entry)
    return (
        f"-- Insert new book: {_comment(title)}\n"
        f"INSERT INTO {table} (title, file_url, content_type, language, is_public, user_id, created_at, updated_at)\n"
        f"VALUES (\n"
        f"  {sql_quote(title)},\n"
        f"  {sql_quote(entry.url)},\n"
        f"  {sql_quote(content_type)},\n"
        f"  {sql_quote(language)},\n"
        f"  {sql_bool(is_public)},\n"
        f"  {sql_quote(owner_user_id)},\n"
        f"  NOW(),\n"
        f"  NOW()\n"
        f");"
    )


def render_plan_file(statements: List[str], *, heading: str, generated_at: str, noun: str) -> str:
    """Wrap statements in one transaction with a header and a trailing count comment."""
    lines = [
        f"-- {heading}",
        f"-- Generated {generated_at}",
        "-- Review before running against the database",
        "",
        "BEGIN;",
        "",
    ]
    for stmt in statements:
        lines.append(stmt)
        lines.append("")
    lines.append("COMMIT;")
    lines.append("")
    lines.append(f"-- Summary: {len(statements)} {noun}")
    return "\n".join(lines) + "\n"
