"""
Interval Utilities

Half-open time intervals represented as {"start": datetime, "end": datetime}.
None of these functions mutate their inputs, and none return empty or
negative-length intervals.
"""

from datetime import datetime, timedelta
from typing import Dict, Iterable, List

Interval = Dict[str, datetime]


def make_interval(start: datetime, end: datetime) -> Interval:
	return {"start": start, "end": end}


def is_empty(interval: Interval) -> bool:
	return interval["end"] <= interval["start"]


def overlaps(a: Interval, b: Interval) -> bool:
	"""True when two half-open intervals share at least one instant."""
	return a["start"] < b["end"] and b["start"] < a["end"]


def fits_within(candidate: Interval, window: Interval) -> bool:
	return window["start"] <= candidate["start"] and candidate["end"] <= window["end"]


def expand(interval: Interval, buffer_minutes: int) -> Interval:
	"""
	Grows an interval by buffer_minutes on both sides.

	Args:
		interval: interval to expand
		buffer_minutes: minutes to add before start and after end (>= 0)

	Returns:
		dict: new expanded interval
	"""
	if buffer_minutes < 0:
		raise ValueError("buffer_minutes must be >= 0")

	buffer = timedelta(minutes=buffer_minutes)
	return {"start": interval["start"] - buffer, "end": interval["end"] + buffer}


def merge(intervals: Iterable[Interval]) -> List[Interval]:
	"""
	Coalesces touching or overlapping intervals.

	Args:
		intervals: intervals in any order

	Returns:
		list: sorted, disjoint intervals; empty intervals are dropped
	"""
	ordered = sorted(
		(dict(i) for i in intervals if not is_empty(i)),
		key=lambda x: x["start"]
	)

	if not ordered:
		return []

	merged = [ordered[0]]

	for current in ordered[1:]:
		last_merged = merged[-1]

		if current["start"] <= last_merged["end"]:
			if current["end"] > last_merged["end"]:
				last_merged["end"] = current["end"]
		else:
			merged.append(current)

	return merged


def _subtract_one(interval: Interval, block: Interval) -> List[Interval]:
	"""
	Removes a block from an interval.

	Returns 0, 1 or 2 intervals:
		1. block does not overlap -> [interval]
		2. block covers interval -> []
		3. block covers the start -> [tail]
		4. block covers the end -> [head]
		5. block inside interval -> [head, tail]
	"""
	if is_empty(block) or not overlaps(interval, block):
		return [dict(interval)]

	pieces = []
	if block["start"] > interval["start"]:
		pieces.append({"start": interval["start"], "end": block["start"]})
	if block["end"] < interval["end"]:
		pieces.append({"start": block["end"], "end": interval["end"]})

	return pieces


def subtract(free_window: Interval, busy_intervals: Iterable[Interval]) -> List[Interval]:
	"""
	Removes every busy interval from a free window.

	Args:
		free_window: the window to carve
		busy_intervals: blocks to remove, in any order, possibly overlapping

	Returns:
		list: remaining free sub-intervals, in chronological order
	"""
	if is_empty(free_window):
		return []

	remaining = [dict(free_window)]

	for block in merge(busy_intervals):
		next_remaining = []
		for piece in remaining:
			next_remaining.extend(_subtract_one(piece, block))
		remaining = next_remaining

	return [piece for piece in remaining if not is_empty(piece)]


def subtract_all(free_windows: Iterable[Interval], busy_intervals: Iterable[Interval]) -> List[Interval]:
	"""Applies subtract() to several windows and returns the pieces in order."""
	busy = merge(busy_intervals)
	result = []
	for window in free_windows:
		result.extend(subtract(window, busy))
	result.sort(key=lambda x: x["start"])
	return result
