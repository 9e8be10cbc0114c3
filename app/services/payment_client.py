# app/services/payment_client.py
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import stripe

from app.domain.errors import NotFoundError, ValidationError
from app.utils.logging import get_logger
from app.utils.retry import payment_retry
from app.utils.settings import STRIPE_SECRET_KEY

logger = get_logger(__name__)


@dataclass(frozen=True)
class CheckoutSession:
    id: str
    url: Optional[str] = None
    payment_status: Optional[str] = None
    metadata: Dict[str, str] = field(default_factory=dict)
    customer_email: Optional[str] = None


def _to_checkout_session(session: Any) -> CheckoutSession:
    metadata = getattr(session, "metadata", None) or {}
    return CheckoutSession(
        id=session.id,
        url=getattr(session, "url", None),
        payment_status=getattr(session, "payment_status", None),
        metadata={str(k): "" if v is None else str(v) for k, v in dict(metadata).items()},
        customer_email=getattr(session, "customer_email", None),
    )


class PaymentClient:
    """
    Stripe Checkout: tworzenie i odczyt sesji platnosci.
    Sama platnosc dzieje sie po stronie Stripe, my tylko czytamy payment_status.
    """

    def __init__(self, secret_key: str | None = None):
        self.secret_key = STRIPE_SECRET_KEY if secret_key is None else secret_key

    def create_session(
        self,
        line_items: List[Dict[str, Any]],
        success_url: str,
        cancel_url: str,
        metadata: Dict[str, str],
        customer_email: str | None = None,
        client_reference_id: str | None = None,
    ) -> CheckoutSession:
        params: Dict[str, Any] = {
            "mode": "payment",
            "line_items": line_items,
            "success_url": success_url,
            "cancel_url": cancel_url,
            "metadata": metadata,
        }
        if client_reference_id:
            params["client_reference_id"] = client_reference_id
        if customer_email:
            params["customer_email"] = customer_email

        # ten sam klucz dla kazdej proby, retry nie stworzy drugiej sesji
        idempotency_key = str(uuid.uuid4())
        try:
            session = self._create(params, idempotency_key)
        except stripe.InvalidRequestError as e:
            logger.error(f"Stripe rejected checkout session: {e}")
            raise ValidationError(f"Payment provider rejected the checkout: {e.user_message or e}")
        logger.info(f"Stripe checkout session {session.id} created ({len(line_items)} line items)")
        return _to_checkout_session(session)

    def retrieve_session(self, session_id: str) -> CheckoutSession:
        try:
            session = self._retrieve(session_id)
        except stripe.InvalidRequestError as e:
            logger.warning(f"Stripe could not find checkout session {session_id}: {e}")
            raise NotFoundError("Checkout session not found")
        return _to_checkout_session(session)

    def _api_key(self) -> str:
        if not self.secret_key:
            raise ValidationError("Stripe is not configured")
        return self.secret_key

    @payment_retry()
    def _create(self, params: Dict[str, Any], idempotency_key: str):
        return stripe.checkout.Session.create(
            api_key=self._api_key(),
            idempotency_key=idempotency_key,
            **params,
        )

    @payment_retry()
    def _retrieve(self, session_id: str):
        logger.info(f"Stripe GET checkout session {session_id}")
        return stripe.checkout.Session.retrieve(session_id, api_key=self._api_key())
