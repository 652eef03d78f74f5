"""
Audit Trail Module

Hash-chained append-only audit log with SHA-256 for tamper detection.
Every account lifecycle change and ledger mutation is recorded here.
"""

import hashlib
import json
import threading
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from .storage import StorageInterface


class AuditEventType(Enum):
    """Types of audit events"""
    # Account events
    ACCOUNT_PREPARED = "account_prepared"
    SECURITY_CHECK_REQUESTED = "security_check_requested"
    ACCOUNT_ACTIVATED = "account_activated"
    ACCOUNT_ACTIVATION_REJECTED = "account_activation_rejected"
    ACCOUNT_DEACTIVATED = "account_deactivated"

    # Transaction events
    TRANSACTION_CREATED = "transaction_created"
    TRANSACTION_UPDATED = "transaction_updated"
    TRANSACTION_DELETED = "transaction_deleted"


@dataclass
class AuditEvent:
    """
    Immutable audit event chained to its predecessor by hash
    """
    id: str
    created_at: datetime
    event_type: AuditEventType
    entity_type: str    # account or transaction
    entity_id: str
    previous_hash: str
    current_hash: str
    metadata: Dict[str, Any] = field(default_factory=dict)

    def calculate_hash(self) -> str:
        """
        Calculate SHA-256 hash of this event
        Hash includes all fields except current_hash
        """
        hash_data = {
            'id': self.id,
            'created_at': self.created_at.isoformat(),
            'event_type': self.event_type.value,
            'entity_type': self.entity_type,
            'entity_id': self.entity_id,
            'previous_hash': self.previous_hash,
            'metadata': self.metadata
        }
        json_data = json.dumps(hash_data, sort_keys=True, separators=(',', ':'), default=str)
        return hashlib.sha256(json_data.encode('utf-8')).hexdigest()

    def verify_hash(self) -> bool:
        """Verify that the current hash is correct"""
        return self.current_hash == self.calculate_hash()

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'created_at': self.created_at.isoformat(timespec='microseconds'),
            'event_type': self.event_type.value,
            'entity_type': self.entity_type,
            'entity_id': self.entity_id,
            'previous_hash': self.previous_hash,
            'current_hash': self.current_hash,
            'metadata': self.metadata
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'AuditEvent':
        return cls(
            id=data['id'],
            created_at=datetime.fromisoformat(data['created_at']),
            event_type=AuditEventType(data['event_type']),
            entity_type=data['entity_type'],
            entity_id=data['entity_id'],
            previous_hash=data['previous_hash'],
            current_hash=data['current_hash'],
            metadata=data.get('metadata') or {}
        )


class AuditTrail:
    """
    Hash-chained audit trail for tamper detection
    """

    def __init__(self, storage: StorageInterface, table_name: str = "audit_events", enabled: bool = True):
        self.storage = storage
        self.table_name = table_name
        self.enabled = enabled
        self._lock = threading.Lock()
        self._last_hash = ""
        self._load_last_hash()

    def _load_last_hash(self) -> None:
        """Read the chain head once; later appends keep it current"""
        events = self.storage.load_all(self.table_name)
        self._last_hash = events[-1]['current_hash'] if events else ""

    def log_event(
        self,
        event_type: AuditEventType,
        entity_type: str,
        entity_id: str,
        metadata: Optional[Dict[str, Any]] = None
    ) -> Optional[AuditEvent]:
        """
        Append an audit event to the chain

        Args:
            event_type: Type of audit event
            entity_type: Type of entity being audited
            entity_id: ID of the entity
            metadata: Additional event-specific data (must be JSON serializable)

        Returns:
            The stored AuditEvent, or None when auditing is disabled
        """
        if not self.enabled:
            return None

        with self._lock:
            event = AuditEvent(
                id=str(uuid.uuid4()),
                created_at=datetime.now(timezone.utc),
                event_type=event_type,
                entity_type=entity_type,
                entity_id=str(entity_id),
                previous_hash=self._last_hash,
                current_hash="",
                metadata=json.loads(json.dumps(metadata or {}, default=str))
            )
            event.current_hash = event.calculate_hash()
            self.storage.save(self.table_name, event.id, event.to_dict())
            self._last_hash = event.current_hash
            return event

    def get_events_for_entity(self, entity_type: str, entity_id: str) -> List[AuditEvent]:
        """Get all audit events for an entity in chain order"""
        events_data = self.storage.find(
            self.table_name, {'entity_type': entity_type, 'entity_id': str(entity_id)}
        )
        return [AuditEvent.from_dict(data) for data in events_data]

    def get_all_events(self, limit: Optional[int] = None) -> List[AuditEvent]:
        """Get all audit events in chain order, optionally only the latest N"""
        events = [AuditEvent.from_dict(data) for data in self.storage.load_all(self.table_name)]
        if limit:
            events = events[-limit:]
        return events

    def verify_integrity(self) -> Dict[str, Any]:
        """
        Verify the integrity of the entire audit chain

        Returns:
            Dictionary with integrity check results
        """
        result = {
            'valid': True,
            'total_events': 0,
            'hash_errors': [],
            'chain_breaks': []
        }

        events = self.get_all_events()
        result['total_events'] = len(events)

        previous_hash = ""
        for position, event in enumerate(events):
            if not event.verify_hash():
                result['valid'] = False
                result['hash_errors'].append({'event_id': event.id, 'position': position})
            if event.previous_hash != previous_hash:
                result['valid'] = False
                result['chain_breaks'].append({'event_id': event.id, 'position': position})
            previous_hash = event.current_hash

        return result
