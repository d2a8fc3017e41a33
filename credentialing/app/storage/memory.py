"""
In-memory stores for enrollments and provider banking.

Development and test stand-ins for the external persistence layer.
Records are immutable pydantic models; updates replace the stored
record atomically under a lock.
"""

from __future__ import annotations

import threading
from typing import Any, Dict, Iterable, Optional

from credentialing.app.schemas.banking import BankingRecord
from credentialing.app.schemas.enrollment import EnrollmentRecord


class InMemoryEnrollmentStore:
    def __init__(self, records: Iterable[EnrollmentRecord] = ()) -> None:
        self._records: Dict[str, EnrollmentRecord] = {
            record.id: record for record in records
        }
        self._lock = threading.Lock()

    def get(self, enrollment_id: str) -> Optional[EnrollmentRecord]:
        with self._lock:
            return self._records.get(enrollment_id)

    def put(self, record: EnrollmentRecord) -> EnrollmentRecord:
        with self._lock:
            self._records[record.id] = record
        return record

    def update(self, enrollment_id: str, **changes: Any) -> EnrollmentRecord:
        """
        Apply ``changes`` to a stored record.

        Raises KeyError when the record does not exist.
        """
        with self._lock:
            current = self._records[enrollment_id]
            updated = EnrollmentRecord.model_validate(
                {**current.model_dump(), **changes}
            )
            self._records[enrollment_id] = updated
            return updated


class InMemoryBankingStore:
    def __init__(self, records: Iterable[BankingRecord] = ()) -> None:
        self._records: Dict[str, BankingRecord] = {
            record.physician_id: record for record in records
        }
        self._lock = threading.Lock()

    def get(self, physician_id: str) -> Optional[BankingRecord]:
        with self._lock:
            return self._records.get(physician_id)

    def put(self, record: BankingRecord) -> BankingRecord:
        with self._lock:
            self._records[record.physician_id] = record
        return record
