"""
In-memory storage for users, mood history and consultations.

The user store keeps each user's mood history and supports real-time
streaming of new history records to multiple subscribers. The design allows
for easy replacement with a persistent document store in the future.
"""

import asyncio
import time
import uuid
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field

from .errors import DuplicatePayment, DuplicateUser, NotFound
from .models import MESSAGE_EXCERPT_LENGTH, Consultation, MoodEntry, MoodLabel, User


@dataclass
class UserRecord:
    """Stored user, including the password hash that never leaves the store layer."""

    id: str
    username: str
    email: str
    password_hash: str
    created_at: float
    history: list[MoodEntry] = field(default_factory=list)
    consultations: list[str] = field(default_factory=list)

    def public(self) -> User:
        return User(
            id=self.id,
            username=self.username,
            email=self.email,
            created_at=self.created_at,
            consultations=list(self.consultations),
        )


class UserStore:
    """
    In-memory user and mood history storage with real-time streaming.

    History updates are signalled to subscribers through a single condition
    variable and a per-user update counter. All operations are safe under
    concurrent use from one event loop.
    """

    def __init__(self) -> None:
        self._users: dict[str, UserRecord] = {}
        self._condition = asyncio.Condition()
        self._update_counters: dict[str, int] = {}

    async def create(self, username: str, email: str, password_hash: str) -> UserRecord:
        """
        Register a new user.

        Raises:
            DuplicateUser: if the email or username is already taken
        """
        email = email.strip().lower()
        username = username.strip()
        async with self._condition:
            for existing in self._users.values():
                if existing.email == email:
                    raise DuplicateUser("Email")
                if existing.username == username:
                    raise DuplicateUser("Username")

            record = UserRecord(
                id=uuid.uuid4().hex,
                username=username,
                email=email,
                password_hash=password_hash,
                created_at=time.time(),
            )
            self._users[record.id] = record
            self._update_counters[record.id] = 0
            return record

    async def get(self, user_id: str) -> UserRecord:
        """
        Raises:
            NotFound: if no user has this id
        """
        async with self._condition:
            return self._get(user_id)

    async def find_by_email(self, email: str) -> UserRecord | None:
        email = email.strip().lower()
        async with self._condition:
            for record in self._users.values():
                if record.email == email:
                    return record
            return None

    async def append_mood(self, user_id: str, mood: MoodLabel, message: str = "") -> MoodEntry:
        """
        Append a mood record to a user's history and notify all subscribers.

        Args:
            user_id: The user the record belongs to
            mood: The detected mood
            message: The classified message; only an excerpt is stored

        Returns:
            The stored MoodEntry with timestamp
        """
        async with self._condition:
            record = self._get(user_id)
            entry = MoodEntry(
                mood=mood,
                message=message[:MESSAGE_EXCERPT_LENGTH],
                timestamp=time.time(),
            )
            record.history.append(entry)
            self._update_counters[user_id] += 1

            self._condition.notify_all()

            return entry

    async def history(self, user_id: str) -> list[MoodEntry]:
        async with self._condition:
            return list(self._get(user_id).history)

    async def add_consultation(self, user_id: str, consultation_id: str) -> None:
        async with self._condition:
            self._get(user_id).consultations.append(consultation_id)

    @asynccontextmanager
    async def stream(self, user_id: str) -> AsyncGenerator[AsyncGenerator[MoodEntry, None], None]:
        """
        Stream a user's mood history to a subscriber.

        This context manager yields an async generator that first produces the
        existing history, then each new MoodEntry as it is appended.

        Raises:
            NotFound: if no user has this id

        Yields:
            An async generator of MoodEntry objects
        """
        await self.get(user_id)

        async def history_generator() -> AsyncGenerator[MoodEntry, None]:
            async with self._condition:
                last_seen_counter = self._update_counters[user_id]
                seen = len(self._users[user_id].history)
                backlog = list(self._users[user_id].history)

            for entry in backlog:
                yield entry

            try:
                while True:
                    async with self._condition:
                        await self._condition.wait_for(
                            lambda: self._update_counters[user_id] > last_seen_counter
                        )

                        last_seen_counter = self._update_counters[user_id]
                        fresh = self._users[user_id].history[seen:]
                        seen += len(fresh)

                    for entry in fresh:
                        yield entry

            except (asyncio.CancelledError, GeneratorExit):
                # Subscriber disconnected or generator closed
                return

        yield history_generator()

    def _get(self, user_id: str) -> UserRecord:
        try:
            return self._users[user_id]
        except KeyError:
            raise NotFound(f"User {user_id} not found") from None


@dataclass(frozen=True)
class PendingOrder:
    """A gateway order awaiting checkout."""

    order_id: str
    user_id: str
    amount_minor: int
    currency: str


class ConsultationStore:
    """In-memory consultation bookings, unique by payment id.

    Orders created through the gateway are remembered so that a booking is
    recorded with the amount the server charged, never one sent by the client.
    """

    def __init__(self) -> None:
        self._consultations: dict[str, Consultation] = {}
        self._orders: dict[str, PendingOrder] = {}
        self._lock = asyncio.Lock()

    async def register_order(
        self, order_id: str, user_id: str, amount_minor: int, currency: str
    ) -> PendingOrder:
        async with self._lock:
            order = PendingOrder(order_id, user_id, amount_minor, currency)
            self._orders[order_id] = order
            return order

    async def get_order(self, order_id: str, user_id: str) -> PendingOrder:
        """
        Raises:
            NotFound: if the order is unknown or belongs to another user
        """
        async with self._lock:
            order = self._orders.get(order_id)
        if order is None or order.user_id != user_id:
            raise NotFound(f"Order {order_id} not found")
        return order

    async def create(
        self,
        *,
        user_id: str,
        username: str,
        email: str,
        amount: float,
        currency: str,
        payment_id: str,
        order_id: str,
    ) -> Consultation:
        """
        Book a confirmed consultation for a verified payment.

        Raises:
            DuplicatePayment: if the payment id was already used
        """
        async with self._lock:
            if any(c.payment_id == payment_id for c in self._consultations.values()):
                raise DuplicatePayment(f"Payment {payment_id} already used")

            consultation = Consultation(
                id=uuid.uuid4().hex,
                user_id=user_id,
                username=username,
                email=email,
                amount=amount,
                currency=currency,
                payment_id=payment_id,
                order_id=order_id,
                status="confirmed",
                created_at=time.time(),
            )
            self._consultations[consultation.id] = consultation
            return consultation

    async def list_for_user(self, user_id: str) -> list[Consultation]:
        """Consultations for a user, newest first."""
        async with self._lock:
            found = [c for c in self._consultations.values() if c.user_id == user_id]
        # Insertion order is booking order
        return found[::-1]
