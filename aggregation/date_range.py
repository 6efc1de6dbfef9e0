#!/usr/bin/env python3
from __future__ import annotations

from datetime import date, datetime, time, timezone
from typing import Optional, Tuple, Union

DateLike = Union[str, date, datetime]


def to_utc_datetime(value: DateLike) -> datetime:
	"""Parse an ISO string, date or datetime into an aware UTC datetime.

	Naive values are taken to be UTC already; bare dates mean midnight.
	"""
	if isinstance(value, str):
		text = value.strip()
		if text.endswith(("Z", "z")):
			text = text[:-1] + "+00:00"
		try:
			value = datetime.fromisoformat(text)
		except ValueError as e:
			raise ValueError(f"Invalid date: {value!r}") from e
	if not isinstance(value, datetime):
		value = datetime.combine(value, time.min)
	if value.tzinfo is None:
		return value.replace(tzinfo=timezone.utc)
	return value.astimezone(timezone.utc)


def normalize_date_range(since: DateLike, until: Optional[DateLike] = None) -> Tuple[datetime, datetime]:
	start = to_utc_datetime(since)
	end = to_utc_datetime(until) if until is not None else datetime.now(timezone.utc)
	if start > end:
		raise ValueError(f"since ({start.isoformat()}) is after until ({end.isoformat()})")
	return start, end


def iso_utc(value: datetime) -> str:
	return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")
