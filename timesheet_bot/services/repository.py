"""
Timesheet row storage

RowRepository is the storage interface consumed by the submission workflow.
Two implementations are provided: an in-memory store for tests and embedding,
and a CSV store using a pandas DataFrame guarded by a file lock so that a
second process cannot interleave writes.
"""

import logging
import math
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

import pandas as pd
from filelock import FileLock

from ..models.entry import EntryStatus, TimesheetEntry

CSV_COLUMNS = [
    'id', 'date', 'project', 'tool', 'task_description', 'charge_code',
    'hours', 'time_in', 'time_out', 'status', 'submitted_at',
]


class RowRepository(ABC):
    """Storage operations used around a submission"""

    @abstractmethod
    def get_pending(self) -> List[TimesheetEntry]:
        """Entries not yet submitted and not currently in progress"""
        pass

    @abstractmethod
    def mark_in_progress(self, ids: Iterable[int]):
        pass

    @abstractmethod
    def mark_submitted(self, ids: Iterable[int]):
        pass

    @abstractmethod
    def remove_failed(self, ids: Iterable[int]):
        """Return failed entries to pending so they can be corrected"""
        pass

    @abstractmethod
    def reset_in_progress(self) -> int:
        """Return every in-progress entry to pending; returns how many were reset"""
        pass


class InMemoryRowRepository(RowRepository):
    """Dictionary-backed repository"""

    def __init__(self, entries: Optional[Iterable[TimesheetEntry]] = None):
        self.entries: Dict[int, TimesheetEntry] = {}
        self._next_id = 1
        for entry in entries or []:
            self.add(entry)

    def add(self, entry: TimesheetEntry) -> TimesheetEntry:
        if entry.id is None:
            entry.id = self._next_id
        self._next_id = max(self._next_id, entry.id + 1)
        self.entries[entry.id] = entry
        return entry

    def get(self, entry_id: int) -> Optional[TimesheetEntry]:
        return self.entries.get(entry_id)

    def get_pending(self) -> List[TimesheetEntry]:
        return [entry for entry in self.entries.values() if entry.status == EntryStatus.PENDING]

    def _set_status(self, ids: Iterable[int], status: EntryStatus):
        for entry_id in ids:
            entry = self.entries.get(entry_id)
            if entry is not None:
                entry.status = status

    def mark_in_progress(self, ids: Iterable[int]):
        self._set_status(ids, EntryStatus.IN_PROGRESS)

    def mark_submitted(self, ids: Iterable[int]):
        self._set_status(ids, EntryStatus.SUBMITTED)

    def remove_failed(self, ids: Iterable[int]):
        self._set_status(ids, EntryStatus.PENDING)

    def reset_in_progress(self) -> int:
        in_progress = [entry for entry in self.entries.values() if entry.status == EntryStatus.IN_PROGRESS]
        for entry in in_progress:
            entry.reset_status()
        return len(in_progress)


def _clean(value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, float) and math.isnan(value):
        return None
    return value


def _optional_str(value: Any) -> Optional[str]:
    value = _clean(value)
    return None if value is None else str(value)


class CsvRowRepository(RowRepository):
    """CSV-file repository, one row per timesheet entry"""

    def __init__(self, csv_file: str):
        self.csv_file = Path(csv_file)
        self.lock_file = self.csv_file.with_suffix(self.csv_file.suffix + '.lock')
        self.file_lock = FileLock(str(self.lock_file))
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    # =================== DataFrame helpers ===================

    def _read(self) -> pd.DataFrame:
        if not self.csv_file.exists():
            return pd.DataFrame(columns=CSV_COLUMNS)
        df = pd.read_csv(self.csv_file, dtype=str)
        for column in CSV_COLUMNS:
            if column not in df.columns:
                df[column] = None
        df['status'] = df['status'].fillna(EntryStatus.PENDING.value)
        df['status'] = df['status'].replace('', EntryStatus.PENDING.value)

        # Rows added by hand get the next free id
        df['id'] = pd.to_numeric(df['id'], errors='coerce')
        missing = df['id'].isna()
        if missing.any():
            start = int(df['id'].max()) + 1 if df['id'].notna().any() else 1
            df.loc[missing, 'id'] = list(range(start, start + int(missing.sum())))
        df['id'] = df['id'].astype(int)
        return df

    def _write(self, df: pd.DataFrame):
        df[CSV_COLUMNS].to_csv(self.csv_file, index=False, encoding='utf-8')

    @staticmethod
    def _to_entry(record: Dict[str, Any]) -> TimesheetEntry:
        hours = _clean(record.get('hours'))
        return TimesheetEntry(
            id=int(record['id']),
            date=str(record['date']),
            project=_optional_str(record.get('project')) or "",
            task_description=_optional_str(record.get('task_description')) or "",
            hours=float(hours) if hours is not None else None,
            tool=_optional_str(record.get('tool')),
            charge_code=_optional_str(record.get('charge_code')),
            time_in=_optional_str(record.get('time_in')),
            time_out=_optional_str(record.get('time_out')),
            status=EntryStatus(record['status']),
        )

    def _update_status(self, ids: Iterable[int], status: EntryStatus) -> int:
        wanted = set(ids)
        if not wanted:
            return 0
        with self.file_lock:
            df = self._read()
            mask = df['id'].isin(wanted)
            df.loc[mask, 'status'] = status.value
            if status == EntryStatus.SUBMITTED:
                df.loc[mask, 'submitted_at'] = datetime.now().isoformat(timespec='seconds')
            self._write(df)
            return int(mask.sum())

    # =================== RowRepository ===================

    def add_entries(self, entries: Iterable[TimesheetEntry]) -> List[TimesheetEntry]:
        """Append entries, assigning ids to those without one"""
        entries = list(entries)
        with self.file_lock:
            df = self._read()
            next_id = int(df['id'].max()) + 1 if not df.empty else 1
            records = []
            for entry in entries:
                if entry.id is None:
                    entry.id = next_id
                next_id = max(next_id, entry.id + 1)
                records.append({
                    'id': entry.id, 'date': entry.date, 'project': entry.project, 'tool': entry.tool,
                    'task_description': entry.task_description, 'charge_code': entry.charge_code,
                    'hours': entry.hours, 'time_in': entry.time_in, 'time_out': entry.time_out,
                    'status': entry.status.value, 'submitted_at': None,
                })
            new_df = pd.DataFrame(records, columns=CSV_COLUMNS)
            df = new_df if df.empty else pd.concat([df, new_df], ignore_index=True)
            self._write(df)
        return entries

    def get_pending(self) -> List[TimesheetEntry]:
        with self.file_lock:
            df = self._read()
        pending = df[df['status'] == EntryStatus.PENDING.value]
        return [self._to_entry(record) for record in pending.to_dict('records')]

    def mark_in_progress(self, ids: Iterable[int]):
        self._update_status(ids, EntryStatus.IN_PROGRESS)

    def mark_submitted(self, ids: Iterable[int]):
        count = self._update_status(ids, EntryStatus.SUBMITTED)
        if count:
            self.logger.info(f"Marked {count} entries as submitted")

    def remove_failed(self, ids: Iterable[int]):
        count = self._update_status(ids, EntryStatus.PENDING)
        if count:
            self.logger.warning(f"Reverted {count} failed entries back to pending")

    def reset_in_progress(self) -> int:
        with self.file_lock:
            df = self._read()
            mask = df['status'] == EntryStatus.IN_PROGRESS.value
            count = int(mask.sum())
            if count:
                df.loc[mask, 'status'] = EntryStatus.PENDING.value
                self._write(df)
        return count
