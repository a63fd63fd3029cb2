import logging
from contextlib import asynccontextmanager
from typing import Optional
from fastapi import FastAPI, Request
from fastapi.exceptions import HTTPException
from fastapi.responses import JSONResponse
import uvicorn

from config.conf import Settings, load_settings
from controllers.booking_controller import BookingController
from dtos.dtos import (
    BookingResponse,
    GuestAccessRequest,
    GuestBookingRequest,
    GuestPaymentConfirmRequest,
    GuestPaymentIntentRequest,
    PaymentIntentResponse,
)
from jobs.worker import broker
from services.booking_service import BookingService
from services.guest_identity_service import GuestIdentityService
from services.payment_service import DemoPaymentGateway
from storage import build_store

logger = logging.getLogger(__name__)
booking_controller = BookingController()


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or load_settings()
    logging.basicConfig(level=settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        store = await build_store(settings)
        identity_service = GuestIdentityService(store)

        # Provision the guest owner once so request handlers only read it
        guest_owner_id = await identity_service.resolve_guest_owner()
        logger.info("Guest owner %s ready on %s storage", guest_owner_id, store.name)

        app.state.store = store
        app.state.booking_service = BookingService(
            store,
            DemoPaymentGateway(),
            identity_service=identity_service,
            locator_max_attempts=settings.locator_max_attempts,
        )

        # Start Taskiq broker so tasks can be enqueued
        await broker.startup()

        yield

        # Shutdown broker gracefully
        await broker.shutdown()
        await store.close()

    app = FastAPI(lifespan=lifespan)

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        return JSONResponse(status_code=exc.status_code, content={"success": False, "message": exc.detail})

    @app.get("/health")
    async def health(request: Request):
        store = request.app.state.store
        return {"status": "ok", "storage": store.name, "database": await store.ping()}

    @app.post("/api/guest/bookings", status_code=201, response_model=BookingResponse)
    async def create_guest_booking(request: Request, body: GuestBookingRequest):
        return await booking_controller.create_guest_booking(request, body)

    @app.post("/api/guest/bookings/lookup", response_model=BookingResponse)
    async def lookup_guest_booking(request: Request, body: GuestAccessRequest):
        return await booking_controller.lookup_guest_booking(request, body)

    @app.post("/api/guest/bookings/cancel", response_model=BookingResponse)
    async def cancel_guest_booking(request: Request, body: GuestAccessRequest):
        return await booking_controller.cancel_guest_booking(request, body)

    @app.post("/api/guest/payments/create-intent", response_model=PaymentIntentResponse)
    async def create_guest_payment_intent(request: Request, body: GuestPaymentIntentRequest):
        return await booking_controller.create_guest_payment_intent(request, body)

    @app.post("/api/guest/payments/confirm", response_model=BookingResponse)
    async def confirm_guest_payment(request: Request, body: GuestPaymentConfirmRequest):
        return await booking_controller.confirm_guest_payment(request, body)

    return app


app = create_app()

# define main
if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=load_settings().port)
