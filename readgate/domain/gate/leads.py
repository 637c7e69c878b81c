"""Lead record persistence."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Protocol

from readgate.infra.postgres import get_pool

LEADS_TABLE = "read_gate_leads"


@dataclass(slots=True)
class LeadRecord:
	email: str
	consent: bool
	page_url: str
	page_title: str
	created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class LeadRepository(Protocol):
	async def insert(self, record: LeadRecord) -> None:
		...


class PostgresLeadRepository:
	"""Append-only writes into the leads table owned by the schema collaborator."""

	async def insert(self, record: LeadRecord) -> None:
		pool = await get_pool()
		async with pool.acquire() as conn:
			await conn.execute(
				f"""
				INSERT INTO {LEADS_TABLE} (email, consent, page_url, page_title, created_at)
				VALUES ($1, $2, $3, $4, $5)
				""",
				record.email,
				record.consent,
				record.page_url,
				record.page_title,
				record.created_at,
			)


class InMemoryLeadRepository:
	"""Process-local repository for tests and local runs without Postgres."""

	def __init__(self) -> None:
		self.records: list[LeadRecord] = []
		self._lock = asyncio.Lock()

	async def insert(self, record: LeadRecord) -> None:
		async with self._lock:
			self.records.append(record)

	def for_email(self, email: str) -> list[LeadRecord]:
		lowered = email.strip().lower()
		return [record for record in self.records if record.email.lower() == lowered]
