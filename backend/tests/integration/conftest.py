"""
Fake LifeOS backend for integration tests.

A small FastAPI app that speaks the backend's envelope format and is mounted
into the real client through ``httpx.ASGITransport``.
"""

import httpx
import pytest
from fastapi import APIRouter, FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse

from lifeos.auth import Session
from lifeos.main import create_core
from lifeos.models.billing import CheckoutSuccess

PLAN_LIMIT_MESSAGE = (
    "You have reached your limit of {limit} {label}. "
    "Upgrade to PRO/COUPLE/LIFETIME for unlimited access."
)

# path -> collection key inside ``data`` (None: ``data`` is the list)
RESOURCES: dict[str, str | None] = {
    "/diary": "entries",
    "/ideas": "ideas",
    "/trips": "trips",
    "/watch": "items",
    "/gifting": "ideas",
    "/subscriptions": "subscriptions",
    "/vault": None,
    "/vault/documents": None,
}


def error_response(status_code: int, message: str, errors: list | None = None) -> JSONResponse:
    body: dict = {"success": False, "message": message}
    if errors is not None:
        body["errors"] = errors
    return JSONResponse(status_code=status_code, content=body)


class FakeBackend:
    """In-memory backend state plus the FastAPI app serving it."""

    def __init__(self, token: str = "test-token"):
        self.token = token
        self.subscription: dict = {
            "plan": "FREE",
            "billingCycle": "NONE",
            "price": 0,
            "startedAt": None,
            "expiresAt": None,
            "isActive": True,
            "daysRemaining": None,
        }
        self.items: dict[str, list[dict]] = {path: [] for path in RESOURCES}
        self.failing_paths: set[str] = set()
        self.orders: dict[str, dict] = {}
        self.consumed_orders: set[str] = set()
        self.list_params: dict[str, dict] = {}
        self.app = self._build_app()

    def signature_for(self, order_id: str, payment_id: str) -> str:
        return f"sig_{order_id}_{payment_id}"

    def _build_app(self) -> FastAPI:
        app = FastAPI()
        router = APIRouter(prefix="/api")

        @app.middleware("http")
        async def require_bearer(request: Request, call_next):
            if request.headers.get("Authorization") != f"Bearer {self.token}":
                return error_response(401, "Authentication required")
            return await call_next(request)

        for path, key in RESOURCES.items():
            router.add_api_route(path, self._list_handler(path, key), methods=["GET"])

        @router.post("/ideas")
        async def create_idea(request: Request):
            body = await request.json()
            if not body.get("content"):
                return error_response(
                    400,
                    "Validation error",
                    [{"field": "content", "message": "Content is required"}],
                )
            live = [i for i in self.items["/ideas"] if i.get("status") != "archived"]
            if self.subscription["plan"] == "FREE" and len(live) >= 20:
                return error_response(
                    400,
                    "Validation error",
                    [
                        {
                            "field": "subscription",
                            "message": PLAN_LIMIT_MESSAGE.format(limit=20, label="ideas"),
                        }
                    ],
                )
            idea = {"id": f"idea_{len(self.items['/ideas']) + 1}", "status": "new", **body}
            self.items["/ideas"].append(idea)
            return JSONResponse(status_code=201, content={"success": True, "data": idea})

        @router.get("/user-subscription")
        async def get_subscription():
            return {"success": True, "message": "ok", "data": self.subscription}

        @router.post("/user-subscription/cancel")
        async def cancel_subscription():
            self.subscription = {**self.subscription, "plan": "FREE", "billingCycle": "NONE"}
            return {"success": True, "message": "Subscription cancelled", "data": self.subscription}

        @router.post("/payment/order")
        async def create_order(request: Request):
            body = await request.json()
            if body.get("plan") not in {"PRO", "COUPLE", "LIFETIME"}:
                return error_response(400, "Invalid plan")
            order_id = f"order_{len(self.orders) + 1}"
            self.orders[order_id] = body
            return {
                "success": True,
                "data": {
                    "orderId": order_id,
                    "amount": 19900,
                    "currency": "INR",
                    "providerKey": "rzp_test_key",
                },
            }

        @router.post("/payment/verify")
        async def verify(request: Request):
            body = await request.json()
            order_id = body.get("orderId")
            if order_id not in self.orders or order_id in self.consumed_orders:
                return error_response(400, "Order already processed")
            self.consumed_orders.add(order_id)
            if body.get("signature") != self.signature_for(order_id, body.get("paymentId")):
                return error_response(400, "Invalid payment signature")
            self.subscription = {
                **self.subscription,
                "plan": body["plan"],
                "billingCycle": body["billingCycle"],
                "isActive": True,
            }
            return {
                "success": True,
                "data": {
                    "subscription": self.subscription,
                    "paymentId": body["paymentId"],
                    "orderId": order_id,
                },
            }

        @router.get("/broken")
        async def broken():
            return PlainTextResponse("upstream exploded", status_code=502)

        app.include_router(router)
        return app

    def _list_handler(self, path: str, key: str | None):
        async def list_items(request: Request):
            self.list_params[path] = dict(request.query_params)
            if path in self.failing_paths:
                return error_response(500, "Internal server error")
            limit = int(request.query_params.get("limit", 1000))
            page = self.items[path][:limit]
            data = {key: page} if key else page
            return {"success": True, "data": data}

        return list_items


class SignedCheckoutWidget:
    """Checkout double that pays immediately with a configurable signature."""

    def __init__(self, backend: FakeBackend, *, tamper: bool = False):
        self.backend = backend
        self.tamper = tamper
        self.opened = []

    def open(self, options, handlers) -> None:
        self.opened.append(options)
        payment_id = f"pay_{len(self.opened)}"
        signature = self.backend.signature_for(options.order_id, payment_id)
        handlers.on_success(
            CheckoutSuccess(payment_id=payment_id, signature="forged" if self.tamper else signature)
        )


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def widget(backend: FakeBackend) -> SignedCheckoutWidget:
    return SignedCheckoutWidget(backend)


@pytest.fixture
async def core(backend, widget, session: Session, settings):
    lifeos_core = create_core(
        session,
        widget=widget,
        settings=settings,
        transport=httpx.ASGITransport(app=backend.app),
    )
    yield lifeos_core
    await lifeos_core.close()
