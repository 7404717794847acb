"""
FastAPI server for the MoodAI service.

This module implements the HTTP API: account management with cookie sessions,
the mood-aware chat endpoint, recommendations, mood history (including a
Server-Sent Events feed for live charts) and paid consultation booking.
"""

import asyncio
import json
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import BackgroundTasks, Cookie, Depends, FastAPI, HTTPException, Query, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, Field

from . import __version__
from .auth import (
    TOKEN_COOKIE,
    InvalidToken,
    create_token,
    decode_token,
    hash_password,
    verify_password,
)
from .classifier import MoodClassifier, color_for, default_classifier, score_for
from .config import Settings, get_settings
from .errors import (
    ClassificationUnavailable,
    DuplicatePayment,
    DuplicateUser,
    InvalidInput,
    NotFound,
    PaymentError,
)
from .models import (
    Consultation,
    MoodEntry,
    MoodLabel,
    MoodPoint,
    Recommendation,
    RecommendationType,
    User,
)
from .notifications import NotificationService
from .payments import PaymentGateway, from_minor_units, to_minor_units
from .recommendations import CHAT_RECOMMENDATION_LIMIT, RecommendationStore
from .reports import WeeklySummary, summarize_week
from .responses import LLMResponder, ResponseComposer
from .store import ConsultationStore, UserRecord, UserStore

logger = logging.getLogger(__name__)


# API Request/Response Schemas
class SignupRequest(BaseModel):
    """Payload for account creation."""

    username: str = Field(..., min_length=3, max_length=30)
    email: str = Field(..., pattern=r"^\S+@\S+\.\S+$")
    password: str = Field(..., min_length=6)


class LoginRequest(BaseModel):
    email: str
    password: str


class AuthResponse(BaseModel):
    message: str
    user: User


class MeResponse(BaseModel):
    user: User
    consultations: list[Consultation]


class MessageResponse(BaseModel):
    message: str


class ChatRequest(BaseModel):
    """Payload for a chat message."""

    message: str = Field(..., description="The user's raw chat message")


class SuggestedAction(BaseModel):
    type: RecommendationType
    content: str
    duration: str
    link: str | None = None


class ChatResponse(BaseModel):
    """Companion reply for a chat message."""

    mood: MoodLabel
    color: str
    score: int
    response: str
    suggested_actions: list[SuggestedAction]
    timestamp: float


class CreateOrderRequest(BaseModel):
    amount: float | None = Field(
        None, gt=0, description="Amount in rupees; must match the consultation price if given"
    )
    currency: str | None = None


class CreateOrderResponse(BaseModel):
    success: bool = True
    order_id: str
    amount: int = Field(..., description="Amount in paise")
    currency: str
    key: str


class VerifyPaymentRequest(BaseModel):
    razorpay_order_id: str
    razorpay_payment_id: str
    razorpay_signature: str
    amount: int | None = Field(
        None, gt=0, description="Amount in paise; must match the created order if given"
    )


class VerifyPaymentResponse(BaseModel):
    success: bool = True
    message: str
    consultation: Consultation


def to_point(entry: MoodEntry) -> MoodPoint:
    """Decorate a history record with its chart color and score."""
    return MoodPoint(
        **entry.model_dump(), color=color_for(entry.mood), score=score_for(entry.mood)
    )


def create_app(
    settings: Settings | None = None,
    *,
    users: UserStore | None = None,
    consultations: ConsultationStore | None = None,
    recommendations: RecommendationStore | None = None,
    classifier: MoodClassifier | None = None,
    composer: ResponseComposer | None = None,
    notifier: NotificationService | None = None,
    payments: PaymentGateway | None = None,
) -> FastAPI:
    """
    Create a FastAPI application wired to the given collaborators.

    Any collaborator left as None is built from settings: in-memory stores,
    the AFINN-backed classifier, canned replies (or the model when an API
    key is configured), SMTP email and Razorpay payments when keys are set.

    Returns:
        Configured FastAPI application
    """
    settings = settings or get_settings()
    users = users or UserStore()
    consultations = consultations or ConsultationStore()
    recommendations = recommendations or RecommendationStore()
    classifier = classifier or default_classifier()
    notifier = notifier or NotificationService.from_settings(settings)

    if composer is None:
        llm = None
        if settings.openai_api_key:
            llm = LLMResponder(
                settings.openai_api_key,
                model=settings.openai_model,
                base_url=settings.openai_base_url,
                timeout_seconds=settings.llm_timeout_seconds,
            )
        composer = ResponseComposer(llm=llm)

    if payments is None and settings.razorpay_key_id:
        payments = PaymentGateway(
            settings.razorpay_key_id,
            settings.razorpay_key_secret,
            base_url=settings.razorpay_base_url,
        )

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Lifespan context manager for FastAPI application."""
        logger.info(
            "MoodAI starting (llm=%s, payments=%s, email=%s)",
            composer.llm is not None,
            payments is not None,
            bool(notifier.smtp.host),
        )
        yield

    app = FastAPI(
        title="MoodAI",
        description="Mood-aware wellness companion API",
        version=__version__,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )

    async def current_user(token: str | None = Cookie(None)) -> UserRecord:
        """Resolve the signed-in user from the session cookie."""
        if not token:
            raise HTTPException(status_code=401, detail="Not authenticated")
        try:
            user_id = decode_token(token, settings.jwt_secret)
        except InvalidToken:
            raise HTTPException(status_code=401, detail="Invalid or expired token")
        try:
            return await users.get(user_id)
        except NotFound:
            raise HTTPException(status_code=404, detail="User not found")

    @app.get("/health")
    async def health_check() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "ok", "service": "moodai", "version": __version__}

    # MARK: - Auth

    @app.post("/api/auth/signup", status_code=201)
    async def signup(payload: SignupRequest, background_tasks: BackgroundTasks) -> AuthResponse:
        """Create an account and send a welcome email."""
        try:
            record = await users.create(
                payload.username, payload.email, hash_password(payload.password)
            )
        except DuplicateUser as e:
            raise HTTPException(status_code=400, detail=str(e))

        background_tasks.add_task(notifier.send_welcome, record.email, record.username)
        return AuthResponse(message="Account created successfully", user=record.public())

    @app.post("/api/auth/login")
    async def login(payload: LoginRequest, response: Response) -> AuthResponse:
        """Authenticate and set the session cookie."""
        record = await users.find_by_email(payload.email)
        if record is None or not verify_password(payload.password, record.password_hash):
            raise HTTPException(status_code=401, detail="Invalid email or password")

        token = create_token(record.id, settings.jwt_secret, settings.jwt_expiry_days)
        response.set_cookie(
            TOKEN_COOKIE,
            token,
            httponly=True,
            secure=settings.cookie_secure,
            samesite="lax",
            max_age=settings.jwt_expiry_days * 24 * 60 * 60,
        )
        return AuthResponse(message="Login successful", user=record.public())

    @app.get("/api/auth/me")
    async def me(user: UserRecord = Depends(current_user)) -> MeResponse:
        return MeResponse(
            user=user.public(), consultations=await consultations.list_for_user(user.id)
        )

    @app.post("/api/auth/logout")
    async def logout(response: Response) -> MessageResponse:
        response.delete_cookie(TOKEN_COOKIE)
        return MessageResponse(message="Logged out successfully")

    # MARK: - Chat

    @app.post("/api/chat")
    async def chat(
        payload: ChatRequest,
        background_tasks: BackgroundTasks,
        user: UserRecord = Depends(current_user),
    ) -> ChatResponse:
        """
        Classify a message, retrieve matching recommendations, compose a reply
        and record the mood in the user's history.
        """
        try:
            mood = classifier.classify(payload.message)
        except InvalidInput as e:
            raise HTTPException(status_code=400, detail=str(e))
        except ClassificationUnavailable:
            logger.warning("Mood classification unavailable, defaulting to Neutral", exc_info=True)
            mood = MoodLabel.NEUTRAL

        suggestions = recommendations.find(mood=mood, limit=CHAT_RECOMMENDATION_LIMIT)
        reply = await composer.compose(mood, payload.message, suggestions)
        entry = await users.append_mood(user.id, mood, payload.message)

        if settings.send_session_summaries:
            background_tasks.add_task(
                notifier.send_session_summary, user.email, user.username, mood, reply
            )

        return ChatResponse(
            mood=mood,
            color=color_for(mood),
            score=score_for(mood),
            response=reply,
            suggested_actions=[
                SuggestedAction(type=r.type, content=r.content, duration=r.duration, link=r.link)
                for r in suggestions
            ],
            timestamp=entry.timestamp,
        )

    @app.get("/api/recommendations")
    async def list_recommendations(
        mood: str | None = Query(None, description="Mood label, e.g. 'Burnt Out'"),
        type: RecommendationType | None = Query(None),
    ) -> list[Recommendation]:
        label = None
        if mood is not None:
            try:
                label = MoodLabel.parse(mood)
            except ValueError as e:
                raise HTTPException(status_code=400, detail=str(e))
        return recommendations.find(mood=label, type=type)

    # MARK: - Mood history

    @app.get("/api/mood-history")
    async def mood_history(user: UserRecord = Depends(current_user)) -> list[MoodPoint]:
        return [to_point(entry) for entry in await users.history(user.id)]

    @app.get("/api/mood-history/stream")
    async def stream_mood_history(user: UserRecord = Depends(current_user)) -> StreamingResponse:
        """
        Stream the user's mood history via Server-Sent Events.

        The existing history is sent immediately upon connection, followed by
        each new record as chat messages are classified.

        Returns:
            StreamingResponse with text/event-stream content type
        """

        async def event_generator() -> AsyncGenerator[str, None]:
            """Generate SSE events for mood history records."""
            try:
                async with users.stream(user.id) as history_stream:
                    async for entry in history_stream:
                        yield f"data: {to_point(entry).model_dump_json()}\n\n"
            except asyncio.CancelledError:
                # Client disconnected
                pass
            except Exception as e:
                logger.exception("Mood history stream failed for user %s", user.id)
                error_data = json.dumps({"error": str(e)})
                yield f"event: error\ndata: {error_data}\n\n"

        return StreamingResponse(
            event_generator(),
            media_type="text/event-stream",
            headers={
                "Cache-Control": "no-cache",
                "Connection": "keep-alive",
            },
        )

    @app.post("/api/mood-history/report")
    async def weekly_report(
        background_tasks: BackgroundTasks, user: UserRecord = Depends(current_user)
    ) -> WeeklySummary:
        """Summarize the last seven days and email the report."""
        summary = summarize_week(await users.history(user.id))
        background_tasks.add_task(notifier.send_weekly_report, user.email, user.username, summary)
        return summary

    # MARK: - Payments

    def require_payments() -> PaymentGateway:
        if payments is None:
            raise HTTPException(status_code=503, detail="Payments are not configured")
        return payments

    @app.post("/api/payment/create-order")
    async def create_order(
        payload: CreateOrderRequest,
        user: UserRecord = Depends(current_user),
        gateway: PaymentGateway = Depends(require_payments),
    ) -> CreateOrderResponse:
        price = settings.consultation_price
        if payload.amount is not None and to_minor_units(payload.amount) != to_minor_units(price):
            raise HTTPException(status_code=400, detail=f"Consultation price is {price:.2f}")

        currency = payload.currency or settings.consultation_currency
        try:
            order = await gateway.create_order(price, currency)
        except PaymentError as e:
            logger.error("Order creation failed for user %s: %s", user.id, e)
            raise HTTPException(status_code=502, detail="Failed to create payment order")

        await consultations.register_order(
            order["id"], user.id, order["amount"], order["currency"]
        )
        return CreateOrderResponse(
            order_id=order["id"],
            amount=order["amount"],
            currency=order["currency"],
            key=gateway.key_id,
        )

    @app.post("/api/payment/verify")
    async def verify_payment(
        payload: VerifyPaymentRequest,
        background_tasks: BackgroundTasks,
        user: UserRecord = Depends(current_user),
        gateway: PaymentGateway = Depends(require_payments),
    ) -> VerifyPaymentResponse:
        """Verify a checkout signature and book the consultation."""
        if not gateway.verify_signature(
            payload.razorpay_order_id, payload.razorpay_payment_id, payload.razorpay_signature
        ):
            logger.warning("Payment signature mismatch for order %s", payload.razorpay_order_id)
            raise HTTPException(status_code=400, detail="Payment verification failed")

        try:
            order = await consultations.get_order(payload.razorpay_order_id, user.id)
        except NotFound:
            raise HTTPException(status_code=400, detail="Unknown payment order")
        if payload.amount is not None and payload.amount != order.amount_minor:
            logger.warning("Amount mismatch for order %s", order.order_id)
            raise HTTPException(status_code=400, detail="Payment amount does not match order")

        try:
            consultation = await consultations.create(
                user_id=user.id,
                username=user.username,
                email=user.email,
                amount=from_minor_units(order.amount_minor),
                currency=order.currency,
                payment_id=payload.razorpay_payment_id,
                order_id=payload.razorpay_order_id,
            )
        except DuplicatePayment as e:
            raise HTTPException(status_code=409, detail=str(e))

        await users.add_consultation(user.id, consultation.id)
        logger.info("Consultation %s booked for user %s", consultation.id, user.id)
        background_tasks.add_task(notifier.send_consultation_confirmation, consultation)

        return VerifyPaymentResponse(
            message="Payment verified and consultation booked", consultation=consultation
        )

    @app.get("/api/payment/consultations")
    async def list_consultations(user: UserRecord = Depends(current_user)) -> list[Consultation]:
        return await consultations.list_for_user(user.id)

    return app


# Default app instance for `uvicorn moodai.server:app`
app = create_app()


def main() -> None:
    """Main entry point for the server."""
    import uvicorn

    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run(
        "moodai.server:app",
        host=settings.api_host,
        port=settings.api_port,
        log_level=settings.log_level,
    )


if __name__ == "__main__":
    main()
