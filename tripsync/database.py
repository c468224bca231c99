import logging
from typing import Dict, List, Optional

from pydantic import TypeAdapter
import firebase_admin
from firebase_admin import credentials, firestore

from tripsync.config import settings
from tripsync.models import Room, Member, PlanPackage, PlanVotes, Trip

logger = logging.getLogger(__name__)

_PLAN_LIST = TypeAdapter(List[PlanPackage])

class StorageConfigurationError(RuntimeError):
    pass

class MemoryBackend:
    """Process-local key-value backend (lost on restart)"""

    def __init__(self):
        self._values: Dict[str, str] = {}
        self._sets: Dict[str, Dict[str, None]] = {}

    def get(self, key: str) -> Optional[str]:
        return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        self._values[key] = value

    def sadd(self, key: str, member: str) -> None:
        self._sets.setdefault(key, {})[member] = None

    def smembers(self, key: str) -> List[str]:
        return list(self._sets.get(key, {}))

class FirestoreBackend:
    """Key-value backend storing one Firestore document per key"""

    def __init__(self, client, collection: str):
        self.collection = client.collection(collection)

    def get(self, key: str) -> Optional[str]:
        doc = self.collection.document(key).get()
        if doc.exists:
            return doc.to_dict().get('value')
        return None

    def set(self, key: str, value: str) -> None:
        self.collection.document(key).set({'value': value})

    def sadd(self, key: str, member: str) -> None:
        members = self.smembers(key)
        if member not in members:
            members.append(member)
            self.collection.document(key).set({'members': members})

    def smembers(self, key: str) -> List[str]:
        doc = self.collection.document(key).get()
        if doc.exists:
            return list(doc.to_dict().get('members', []))
        return []

def init_firebase():
    """Initialize the Firebase app from service-account settings and return a Firestore client"""
    if not settings.has_firebase_credentials():
        raise StorageConfigurationError("Firestore storage requires FIREBASE_* credentials")

    if not firebase_admin._apps:
        cred_dict = {
            "type": "service_account",
            "project_id": settings.firebase_project_id,
            "private_key_id": settings.firebase_private_key_id,
            "private_key": settings.firebase_private_key.replace('\\n', '\n').strip('"'),
            "client_email": settings.firebase_client_email,
            "client_id": settings.firebase_client_id,
            "auth_uri": settings.firebase_auth_uri,
            "token_uri": settings.firebase_token_uri
        }
        cred = credentials.Certificate(cred_dict)
        firebase_admin.initialize_app(cred)

    return firestore.client()

def create_backend():
    """Build the backend selected by STORAGE_BACKEND"""
    backend = settings.storage_backend.lower()
    if backend == "memory":
        logger.info("Using in-memory storage")
        return MemoryBackend()
    if backend == "firestore":
        logger.info("Using Firestore storage (collection=%s)", settings.firestore_collection)
        return FirestoreBackend(init_firebase(), settings.firestore_collection)
    raise StorageConfigurationError(f"Unknown storage backend: {settings.storage_backend}")

class Database:
    """Room, member, plan, vote and trip records over a key-value backend.

    Values are stored as camelCase JSON so records written by other clients
    of the same store stay readable. Updates are plain read-modify-write;
    there is no locking between concurrent requests.
    """

    def __init__(self, backend=None):
        self.backend = backend or MemoryBackend()

    def use_backend(self, backend) -> None:
        self.backend = backend

    def _save(self, key: str, model) -> None:
        self.backend.set(key, model.model_dump_json(by_alias=True))

    def _load(self, key: str, model_cls):
        data = self.backend.get(key)
        return model_cls.model_validate_json(data) if data else None

    # Rooms
    def create_room(self, room: Room) -> Room:
        self._save(f"room:{room.id}", room)
        return room

    def get_room(self, room_id: str) -> Optional[Room]:
        return self._load(f"room:{room_id}", Room)

    # Members
    def add_member(self, member: Member) -> Member:
        self._save(f"member:{member.id}", member)
        self.backend.sadd(f"room:{member.room_id}:members", member.id)
        return member

    def get_member(self, member_id: str) -> Optional[Member]:
        return self._load(f"member:{member_id}", Member)

    def get_room_members(self, room_id: str) -> List[Member]:
        members = []
        for member_id in self.backend.smembers(f"room:{room_id}:members"):
            member = self.get_member(member_id)
            if member:
                members.append(member)
        return members

    def update_member(self, member_id: str, **updates) -> Optional[Member]:
        member = self.get_member(member_id)
        if not member:
            return None
        updated = member.model_copy(update=updates)
        self._save(f"member:{member_id}", updated)
        return updated

    # Plan packages
    def set_plan_packages(self, room_id: str, packages: List[PlanPackage]) -> None:
        payload = _PLAN_LIST.dump_json(packages, by_alias=True).decode()
        self.backend.set(f"room:{room_id}:plans", payload)

    def get_plan_packages(self, room_id: str) -> Optional[List[PlanPackage]]:
        data = self.backend.get(f"room:{room_id}:plans")
        if not data:
            return None
        return _PLAN_LIST.validate_json(data)

    # Trips
    def create_trip(self, trip: Trip) -> Trip:
        self._save(f"trip:{trip.id}", trip)
        self.backend.set(f"room:{trip.room_id}:trip", trip.id)
        return trip

    def get_trip(self, trip_id: str) -> Optional[Trip]:
        return self._load(f"trip:{trip_id}", Trip)

    def get_trip_by_room(self, room_id: str) -> Optional[Trip]:
        trip_id = self.backend.get(f"room:{room_id}:trip")
        if not trip_id:
            return None
        return self.get_trip(trip_id)

    def update_trip(self, trip_id: str, **updates) -> Optional[Trip]:
        trip = self.get_trip(trip_id)
        if not trip:
            return None
        updated = trip.model_copy(update=updates)
        self._save(f"trip:{trip_id}", updated)
        return updated

    # Voting
    def set_votes(self, room_id: str, votes: PlanVotes) -> None:
        self._save(f"room:{room_id}:votes", votes)

    def get_votes(self, room_id: str) -> Optional[PlanVotes]:
        return self._load(f"room:{room_id}:votes", PlanVotes)

# Global database instance; main.py swaps in the configured backend at startup
db = Database()
