"""
FastAPI endpoints for the trust registry.

Keys and signatures are URL-safe base64 in HTTP transport. Mutating requests
carry `signer_b64`, `timestamp` and `signature_b64`; the signature covers
canonical_message(operation, body-without-signature-fields). The verified
signer is what the ledger sees as the caller identity. Each signed request
is accepted at most once.
"""

import dataclasses
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, HTTPException, Query
from pydantic import BaseModel

from TrustRegistry.registry_server import config, db
from TrustRegistry.registry_db.certificates import certificate_status
from TrustRegistry.registry_db.ledger import TrustRegistry
from TrustRegistry.registry_db.store import claim_request
from TrustRegistry.registry_shared import errors
from TrustRegistry.registry_shared.signing import decode_b64, decode_key, encode_b64, verify_signer
from TrustRegistry.registry_shared.types import CertificateRecord, IssuerRecord


# ── Pydantic request/response models ──


class SignedRequest(BaseModel):
    signer_b64: str
    timestamp: int
    signature_b64: str

    def signed_params(self) -> dict:
        return self.model_dump(exclude={"signer_b64", "signature_b64"})


class InitializeRequest(SignedRequest):
    pass


class RegisterIssuerRequest(SignedRequest):
    authority_b64: str
    name: str
    details: str = ""


class IssuerStatusRequest(SignedRequest):
    authority_b64: str
    active: bool


class IssueCertificateRequest(SignedRequest):
    certificate_id: str
    recipient_b64: str
    metadata_uri: str = ""
    expiry_date: int = 0


class RevokeCertificateRequest(SignedRequest):
    certificate_id: str


class RegistryOut(BaseModel):
    admin_b64: str
    total_certificates: int
    total_issuers: int


class IssuerOut(BaseModel):
    authority_b64: str
    name: str
    details: str
    active: bool
    registration_date: int
    total_issued: int


class CertificateOut(BaseModel):
    certificate_id: str
    issuer_b64: str
    recipient_b64: str
    issue_date: int
    expiry_date: int
    revoked: bool
    metadata_uri: str
    expired: bool
    is_valid: bool


class CertificateListResponse(BaseModel):
    certificate_ids: list[str]


class EventOut(BaseModel):
    id: str
    type: str
    data: dict


class EventsResponse(BaseModel):
    events: list[EventOut]


class HealthResponse(BaseModel):
    status: str
    redis_connected: bool
    record_count: int
    event_count: int


# ── App lifecycle ──


@asynccontextmanager
async def lifespan(app: FastAPI):
    db.open_ledger(config.REDIS_URL)
    yield
    db.close_ledger()


app = FastAPI(title="Trust Registry", version="1.0.0", lifespan=lifespan)


def _get_ledger() -> TrustRegistry:
    if db.ledger is None:
        raise HTTPException(status_code=503, detail="Ledger not initialized")
    return db.ledger


_STATUS_BY_CATEGORY = {
    errors.ErrorCategory.VALIDATION: 422,
    errors.ErrorCategory.AUTHORIZATION: 403,
    errors.ErrorCategory.STATE: 409,
    errors.ErrorCategory.SYSTEM: 503,
}


def _http_error(e: errors.CertRegistryError) -> HTTPException:
    if isinstance(e, (errors.InvalidSignatureError, errors.StaleRequestError,
                      errors.ReplayedRequestError)):
        status = 401
    elif isinstance(e, errors.NotFoundError):
        status = 404
    else:
        status = _STATUS_BY_CATEGORY[e.category]
    return HTTPException(status_code=status, detail={"error": type(e).__name__, "message": str(e)})


def _authenticate(ledger: TrustRegistry, req: SignedRequest, operation: str) -> bytes:
    now = ledger.clock()
    if abs(now - req.timestamp) > config.REQUEST_MAX_AGE_SECONDS:
        raise errors.StaleRequestError(req.timestamp, now)

    signer = decode_key(req.signer_b64, "signer")
    try:
        signature = decode_b64(req.signature_b64)
    except ValueError:
        raise errors.InvalidSignatureError(operation)
    verify_signer(signer, signature, operation, req.signed_params())

    # a verified request is accepted once; replays inside the window are refused
    if not claim_request(ledger.db, signer, signature, config.REQUEST_CLAIM_TTL_SECONDS):
        raise errors.ReplayedRequestError(operation)
    return signer


def _issuer_out(r: IssuerRecord) -> IssuerOut:
    return IssuerOut(
        authority_b64=encode_b64(r.authority),
        name=r.name,
        details=r.details,
        active=r.active,
        registration_date=r.registration_date,
        total_issued=r.total_issued,
    )


def _certificate_out(r: CertificateRecord, now: int) -> CertificateOut:
    status = certificate_status(r, now)
    return CertificateOut(
        certificate_id=r.certificate_id,
        issuer_b64=encode_b64(r.issuer),
        recipient_b64=encode_b64(r.recipient),
        issue_date=r.issue_date,
        expiry_date=r.expiry_date,
        revoked=r.revoked,
        metadata_uri=r.metadata_uri,
        expired=status.expired,
        is_valid=status.is_valid,
    )


def _event_data(event) -> dict:
    return {
        k: encode_b64(v) if isinstance(v, bytes) else v
        for k, v in dataclasses.asdict(event).items()
    }


# ── Registry ──


@app.post("/v1/registry/initialize", response_model=RegistryOut)
def initialize(req: InitializeRequest):
    ledger = _get_ledger()
    try:
        signer = _authenticate(ledger, req, "initialize")
        r = ledger.initialize(signer)
    except errors.CertRegistryError as e:
        raise _http_error(e)
    return RegistryOut(admin_b64=encode_b64(r.admin), total_certificates=r.total_certificates,
                       total_issuers=r.total_issuers)


@app.get("/v1/registry", response_model=RegistryOut)
def get_registry():
    ledger = _get_ledger()
    try:
        r = ledger.get_registry()
    except errors.CertRegistryError as e:
        raise _http_error(e)
    return RegistryOut(admin_b64=encode_b64(r.admin), total_certificates=r.total_certificates,
                       total_issuers=r.total_issuers)


# ── Issuers ──


@app.post("/v1/issuers/register", response_model=IssuerOut)
def register_issuer(req: RegisterIssuerRequest):
    ledger = _get_ledger()
    try:
        signer = _authenticate(ledger, req, "register_issuer")
        authority = decode_key(req.authority_b64, "authority")
        r = ledger.register_issuer(signer, authority, req.name, req.details)
    except errors.CertRegistryError as e:
        raise _http_error(e)
    return _issuer_out(r)


@app.post("/v1/issuers/status", response_model=IssuerOut)
def update_issuer_status(req: IssuerStatusRequest):
    ledger = _get_ledger()
    try:
        signer = _authenticate(ledger, req, "update_issuer_status")
        authority = decode_key(req.authority_b64, "authority")
        r = ledger.update_issuer_status(signer, authority, req.active)
    except errors.CertRegistryError as e:
        raise _http_error(e)
    return _issuer_out(r)


@app.get("/v1/issuers/{authority_b64}", response_model=IssuerOut)
def get_issuer(authority_b64: str):
    ledger = _get_ledger()
    try:
        r = ledger.get_issuer(decode_key(authority_b64, "authority"))
    except errors.CertRegistryError as e:
        raise _http_error(e)
    return _issuer_out(r)


# ── Certificates ──


@app.post("/v1/certificates/issue", response_model=CertificateOut)
def issue_certificate(req: IssueCertificateRequest):
    ledger = _get_ledger()
    try:
        signer = _authenticate(ledger, req, "issue_certificate")
        recipient = decode_key(req.recipient_b64, "recipient")
        r = ledger.issue_certificate(signer, req.certificate_id, recipient,
                                     req.metadata_uri, req.expiry_date)
    except errors.CertRegistryError as e:
        raise _http_error(e)
    return _certificate_out(r, ledger.clock())


@app.post("/v1/certificates/revoke", response_model=CertificateOut)
def revoke_certificate(req: RevokeCertificateRequest):
    ledger = _get_ledger()
    try:
        signer = _authenticate(ledger, req, "revoke_certificate")
        r = ledger.revoke_certificate(signer, req.certificate_id)
    except errors.CertRegistryError as e:
        raise _http_error(e)
    return _certificate_out(r, ledger.clock())


@app.get("/v1/certificates", response_model=CertificateListResponse)
def list_certificates(issuer: Optional[str] = Query(None), recipient: Optional[str] = Query(None)):
    if (issuer is None) == (recipient is None):
        raise HTTPException(status_code=422, detail="Exactly one of issuer or recipient is required")

    ledger = _get_ledger()
    try:
        if issuer is not None:
            ids = ledger.certificates_by_issuer(decode_key(issuer, "issuer"))
        else:
            ids = ledger.certificates_by_recipient(decode_key(recipient, "recipient"))
    except errors.CertRegistryError as e:
        raise _http_error(e)
    return CertificateListResponse(certificate_ids=ids)


@app.get("/v1/certificates/{certificate_id}", response_model=CertificateOut)
def verify_certificate(certificate_id: str):
    ledger = _get_ledger()
    try:
        r = ledger.verify_certificate(certificate_id)
    except errors.CertRegistryError as e:
        raise _http_error(e)
    return _certificate_out(r, ledger.clock())


# ── Events ──


@app.get("/v1/events", response_model=EventsResponse)
def read_events(after: str = Query("0-0"), count: int = Query(100, gt=0, le=config.EVENTS_MAX_PAGE)):
    ledger = _get_ledger()
    try:
        entries = ledger.read_events(after, count)
    except errors.CertRegistryError as e:
        raise _http_error(e)
    return EventsResponse(events=[
        EventOut(id=entry_id, type=type(event).__name__, data=_event_data(event))
        for entry_id, event in entries
    ])


@app.get("/v1/health", response_model=HealthResponse)
def health():
    h = db.health_check()
    return HealthResponse(
        status="ok" if h.connected else "degraded",
        redis_connected=h.connected,
        record_count=h.record_count,
        event_count=h.event_count,
    )
