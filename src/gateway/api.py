from __future__ import annotations

import dataclasses
import logging
import time
import uuid
from typing import Any

import httpx
from fastapi import FastAPI, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from gateway.controller import WizardController
from gateway.errors import GatewayError
from gateway.logging_config import configure_logging, correlation_id
from gateway.provider import AccuTradeClient
from gateway.sessions import SessionNotFoundError, WizardSessionStore
from gateway.settings import ServiceSettings, provider_api_key
from gateway.valuation import ValuationGateway
from tradein.config import WizardConfig
from tradein.data_models import VehicleIdentity, VinCandidate
from tradein.mileage import build_policy
from tradein.steps import StepOrderError, StepValidationError, WizardStep, build_output

logger = logging.getLogger(__name__)


# ── Request / Response Models ───────────────────────────────────────

class VinRequest(BaseModel):
    vin: str = ""


class ManualLookupRequest(BaseModel):
    year: str = ""
    make: str = ""
    model: str = ""
    trim: str | None = None


class PricingResponse(BaseModel):
    gid: str
    tradeInValue: float
    basePrice: float
    marketValue: float


class VehicleValueResponse(BaseModel):
    tradeInValue: float
    marketValue: float
    basePrice: float
    rawResponse: dict[str, Any]


class MileageResponse(BaseModel):
    adjustment: int
    desirable: bool
    baseMiles: int
    currentMiles: int


class QuoteResponse(BaseModel):
    basePrice: float
    marketValue: float
    priceAdjustment: int
    desirable: bool
    rawResponse: dict[str, Any]


class CatalogOptionResponse(BaseModel):
    value: str
    label: str


class TrimResponse(BaseModel):
    trim: str
    gid: str


class CandidateResponse(BaseModel):
    year: str
    make: str
    model: str
    style: str
    gid: str


class HealthResponse(BaseModel):
    status: str


class VehicleSubmitRequest(BaseModel):
    candidate_index: int | None = Field(default=None, ge=0)
    year: str = ""
    make: str = ""
    model: str = ""
    trim: str = ""
    gid: str | None = None
    mileage: int | None = Field(default=None, ge=0)
    condition: str = "good"


def _candidate(c: VinCandidate) -> CandidateResponse:
    return CandidateResponse(year=c.year, make=c.make, model=c.model, style=c.trim, gid=c.gid)


def _session_view(session_id: str, controller: WizardController) -> dict[str, Any]:
    prompt = controller.prompt
    return {
        "sessionId": session_id,
        "step": controller.state.step.value,
        "state": controller.state.to_dict(),
        "submit": {"label": prompt.label, "enabled": prompt.enabled},
    }


# ── App Factory ─────────────────────────────────────────────────────

def create_app(
    settings: ServiceSettings | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    settings = settings or ServiceSettings()
    configure_logging(level=settings.log_level, fmt=settings.log_format)

    client = AccuTradeClient(
        api_key_source=provider_api_key,
        base_url=settings.accu_trade_base_url,
        timeout=settings.provider_timeout_seconds,
        transport=transport,
    )
    gateway = ValuationGateway(
        client=client,
        mileage_policy=build_policy(
            settings.mileage_policy,
            rate_per_thousand=settings.mileage_rate_per_thousand,
            flat_amount=settings.mileage_flat_amount,
        ),
        default_average_mileage=settings.default_average_mileage,
    )
    wizard_config = WizardConfig()
    sessions = WizardSessionStore(
        lambda: WizardController(gateway, config=wizard_config),
        ttl_seconds=settings.wizard_session_ttl_seconds,
    )

    app = FastAPI(title="Trade-In Valuation Gateway", version="0.1.0")
    app.state.gateway = gateway
    app.state.sessions = sessions

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def correlation_id_middleware(request: Request, call_next: Any) -> Response:
        cid = request.headers.get("X-Correlation-ID") or uuid.uuid4().hex[:12]
        correlation_id.set(cid)
        t0 = time.monotonic()
        response = await call_next(request)
        logger.info(
            "%s %s -> %s (%.1f ms)",
            request.method, request.url.path, response.status_code, (time.monotonic() - t0) * 1000,
        )
        response.headers["X-Correlation-ID"] = cid
        return response

    # ── Error mapping ───────────────────────────────────────────────

    @app.exception_handler(GatewayError)
    async def gateway_error_handler(_: Request, exc: GatewayError) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    @app.exception_handler(StepValidationError)
    async def step_validation_handler(_: Request, exc: StepValidationError) -> JSONResponse:
        return JSONResponse(
            status_code=422,
            content={"error": str(exc), "fields": exc.errors},
        )

    @app.exception_handler(StepOrderError)
    async def step_order_handler(_: Request, exc: StepOrderError) -> JSONResponse:
        return JSONResponse(status_code=status.HTTP_409_CONFLICT, content={"error": str(exc)})

    @app.exception_handler(SessionNotFoundError)
    async def session_not_found_handler(_: Request, exc: SessionNotFoundError) -> JSONResponse:
        return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"error": "Wizard session not found"})

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(_: Request, exc: RequestValidationError) -> JSONResponse:
        first = exc.errors()[0] if exc.errors() else {}
        where = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
        message = f"{where}: {first.get('msg', 'invalid request')}" if where else "Invalid request"
        return JSONResponse(status_code=422, content={"error": message})

    # ── Health ──────────────────────────────────────────────────────

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse(status="ok")

    # ── Valuation Gateway ───────────────────────────────────────────

    @app.post("/vehicle/vin", response_model=list[CandidateResponse])
    async def decode_vin(payload: VinRequest) -> list[CandidateResponse]:
        return [_candidate(c) for c in await gateway.decode_vin(payload.vin)]

    @app.get("/vehicle/gid/{gid}", response_model=PricingResponse)
    async def vehicle_by_gid(gid: str) -> PricingResponse:
        pricing = await gateway.get_vehicle_by_gid(gid)
        return PricingResponse(
            gid=gid,
            tradeInValue=pricing.trade_in_value,
            basePrice=pricing.base_price,
            marketValue=pricing.market_value,
        )

    @app.get("/vehicle/gid/{gid}/value", response_model=VehicleValueResponse)
    async def vehicle_value(gid: str) -> VehicleValueResponse:
        value = await gateway.get_vehicle_value(gid)
        return VehicleValueResponse(
            tradeInValue=value.pricing.trade_in_value,
            marketValue=value.pricing.market_value,
            basePrice=value.pricing.base_price,
            rawResponse=value.raw,
        )

    @app.get("/vehicle/gid/{gid}/mileage/{mileage}", response_model=MileageResponse)
    async def mileage_adjustment(gid: str, mileage: str) -> MileageResponse:
        adj = await gateway.get_mileage_adjustment(gid, mileage)
        return MileageResponse(
            adjustment=adj.adjustment,
            desirable=adj.desirable,
            baseMiles=adj.base_miles,
            currentMiles=adj.current_miles,
        )

    @app.get("/vehicle/gid/{gid}/quote", response_model=QuoteResponse)
    async def vehicle_quote(gid: str, mileage: str = "") -> QuoteResponse:
        quote = await gateway.get_quote(gid, mileage)
        return QuoteResponse(
            basePrice=quote.base_price,
            marketValue=quote.market_value,
            priceAdjustment=quote.price_adjustment,
            desirable=quote.desirable,
            rawResponse=quote.raw_provider_response,
        )

    # ── Catalog ─────────────────────────────────────────────────────

    @app.get("/vehicle/makes", response_model=list[CatalogOptionResponse])
    async def list_makes(year: str | None = None) -> list[CatalogOptionResponse]:
        return [CatalogOptionResponse(value=m.value, label=m.label) for m in await gateway.list_makes(year)]

    @app.get("/vehicle/models", response_model=list[str])
    async def list_models(year: str | None = None, make: str | None = None) -> list[str]:
        return await gateway.list_models(year, make)

    @app.get("/vehicle/trims", response_model=list[TrimResponse])
    async def list_trims(
        year: str | None = None, make: str | None = None, model: str | None = None,
    ) -> list[TrimResponse]:
        return [TrimResponse(trim=t.trim, gid=t.gid) for t in await gateway.list_trims(year, make, model)]

    @app.get("/vehicle/manual", response_model=list[CandidateResponse])
    async def manual_lookup(
        year: str | None = None, make: str | None = None, model: str | None = None,
    ) -> list[CandidateResponse]:
        return [_candidate(c) for c in await gateway.lookup_manual(year, make, model)]

    @app.post("/vehicle/manual", response_model=list[CandidateResponse])
    async def manual_lookup_with_trim(payload: ManualLookupRequest) -> list[CandidateResponse]:
        candidates = await gateway.lookup_manual(payload.year, payload.make, payload.model, payload.trim)
        return [_candidate(c) for c in candidates]

    # ── Wizard Sessions ─────────────────────────────────────────────

    @app.post("/wizard/sessions", status_code=status.HTTP_201_CREATED)
    async def create_session() -> dict[str, Any]:
        session_id, controller = sessions.create()
        logger.info("Wizard session %s started", session_id)
        return _session_view(session_id, controller)

    @app.get("/wizard/sessions/{session_id}")
    async def get_session(session_id: str) -> dict[str, Any]:
        return _session_view(session_id, sessions.get(session_id))

    @app.delete("/wizard/sessions/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
    async def discard_session(session_id: str) -> Response:
        sessions.discard(session_id)
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    @app.post("/wizard/sessions/{session_id}/vehicle/vin")
    async def session_vin_lookup(session_id: str, payload: VinRequest) -> dict[str, Any]:
        controller = sessions.get(session_id)
        candidates = await controller.find_vehicle_by_vin(payload.vin)
        view = _session_view(session_id, controller)
        view["candidates"] = [_candidate(c).model_dump() for c in candidates]
        return view

    @app.post("/wizard/sessions/{session_id}/vehicle/manual")
    async def session_manual_lookup(session_id: str, payload: ManualLookupRequest) -> dict[str, Any]:
        controller = sessions.get(session_id)
        candidates = await controller.find_vehicle_manual(payload.year, payload.make, payload.model, payload.trim)
        view = _session_view(session_id, controller)
        view["candidates"] = [_candidate(c).model_dump() for c in candidates]
        return view

    @app.post("/wizard/sessions/{session_id}/vehicle")
    async def session_submit_vehicle(session_id: str, payload: VehicleSubmitRequest) -> dict[str, Any]:
        controller = sessions.get(session_id)
        identity: VehicleIdentity | None = None
        if payload.candidate_index is not None:
            identity = controller.select_candidate(payload.candidate_index)
        elif any((payload.year, payload.make, payload.model)):
            identity = VehicleIdentity(
                year=payload.year, make=payload.make, model=payload.model,
                trim=payload.trim, gid=payload.gid or None,
            )
        await controller.submit_vehicle(identity=identity, mileage=payload.mileage, condition=payload.condition)
        return _session_view(session_id, controller)

    @app.post("/wizard/sessions/{session_id}/steps/{step}")
    async def session_submit_step(session_id: str, step: WizardStep, payload: dict[str, Any]) -> dict[str, Any]:
        controller = sessions.get(session_id)
        if step is not controller.state.step:
            raise StepOrderError(f"Session is at step '{controller.state.step.value}', not '{step.value}'")
        if step is WizardStep.VEHICLE:
            raise StepOrderError("Submit the vehicle step through /vehicle so it can be valued")
        controller.submit(build_output(step, payload))
        return _session_view(session_id, controller)

    @app.post("/wizard/sessions/{session_id}/back")
    async def session_back(session_id: str) -> dict[str, Any]:
        controller = sessions.get(session_id)
        controller.back()
        view = _session_view(session_id, controller)
        current = controller.state.output_for(controller.state.step)
        view["current"] = dataclasses.asdict(current) if current is not None else None
        return view

    @app.get("/wizard/sessions/{session_id}/report")
    async def session_report(session_id: str) -> dict[str, Any]:
        return sessions.get(session_id).report().to_dict()

    return app


app = create_app()
