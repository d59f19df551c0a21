# bodegix/back/routers/api_qr.py
from fastapi import APIRouter, Depends, HTTPException, status

from ..core.exceptions import (
    AlreadyUsed,
    AuthorizationError,
    CodeGenerationError,
    Expired,
    InvalidCode,
    QrAccessError,
    UnknownCode,
    UnknownLocker,
)
from ..core.security import AuthContext, ReaderContext
from ..models.qr_session import QrSession
from .deps import (
    get_access_notifier,
    get_current_user,
    get_qr_session_service,
    get_reader_context,
)
from ..schemas.qr_session import (
    QrScanRequest,
    QrScanResponse,
    QrSessionCreateRequest,
    QrSessionCreateResponse,
    QrSessionStatusResponse,
)
from ..services.access_notifier import AccessNotifier
from ..services.qr_session_service import UNKNOWN_STATUS, QrSessionService

router = APIRouter(prefix="/api", tags=["qr"])

# order matters: first isinstance match wins
HTTP_STATUS_BY_ERROR = [
    (InvalidCode, 422),
    (UnknownCode, status.HTTP_404_NOT_FOUND),
    (UnknownLocker, status.HTTP_404_NOT_FOUND),
    (AuthorizationError, status.HTTP_403_FORBIDDEN),
    (AlreadyUsed, status.HTTP_409_CONFLICT),
    (Expired, status.HTTP_410_GONE),
    (CodeGenerationError, status.HTTP_503_SERVICE_UNAVAILABLE),
]


def to_http_error(e: QrAccessError) -> HTTPException:
    status_code = status.HTTP_400_BAD_REQUEST
    for error_type, code in HTTP_STATUS_BY_ERROR:
        if isinstance(e, error_type):
            status_code = code
            break
    return HTTPException(
        status_code=status_code,
        detail={"outcome": e.outcome, "message": e.message},
    )


def _can_see(current: AuthContext, session: QrSession) -> bool:
    if current.is_superadmin:
        return True
    if current.tenant_id != session.tenant_id:
        return False
    return current.is_admin or current.user_id == session.user_id


@router.post(
    "/qr-sessions",
    response_model=QrSessionCreateResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_qr_session(
    payload: QrSessionCreateRequest,
    current: AuthContext = Depends(get_current_user),
    service: QrSessionService = Depends(get_qr_session_service),
):
    """
    Mobile app taps "Generate QR" on one of its lockers.
    Returns the code plus the text to render inside the QR image.
    """
    tenant_id = payload.tenant_id if payload.tenant_id is not None else current.tenant_id
    if tenant_id is None:
        raise HTTPException(status_code=400, detail="tenant_id is required")

    try:
        issued = await service.issue(
            locker_id=payload.locker_id,
            tenant_id=tenant_id,
            user_id=current.user_id,
            ttl_seconds=payload.ttl_seconds,
            as_url=payload.as_url,
            caller=current,
        )
    except QrAccessError as e:
        raise to_http_error(e)

    return QrSessionCreateResponse(
        code=issued.code,
        expires_at=issued.expires_at,
        ttl_seconds=issued.ttl_seconds,
        payload=issued.payload,
    )


@router.get("/qr-sessions/{code}/status", response_model=QrSessionStatusResponse)
async def get_qr_session_status(
    code: str,
    current: AuthContext = Depends(get_current_user),
    service: QrSessionService = Depends(get_qr_session_service),
):
    """
    Polled by the app while the QR is on screen. Read only: an expired code
    is reported as expired without touching the stored row.
    """
    session = await service.find(code)
    if session is None or not _can_see(current, session):
        return QrSessionStatusResponse(status=UNKNOWN_STATUS)

    return QrSessionStatusResponse(
        status=service.status_for(session),
        expires_at=session.expires_at,
    )


@router.post("/qr/scan", response_model=QrScanResponse)
async def scan_qr_code(
    payload: QrScanRequest,
    reader: ReaderContext = Depends(get_reader_context),
    notifier: AccessNotifier = Depends(get_access_notifier),
):
    """
    Physical reader forwards what it scanned. Anything but a 200 means
    the locker must stay closed.
    """
    try:
        result = await notifier.scan(payload.code, reader)
    except QrAccessError as e:
        raise to_http_error(e)

    return QrScanResponse(
        outcome=result.validation.outcome,
        locker_id=result.validation.locker_id,
        tenant_id=result.validation.tenant_id,
        user_id=result.validation.user_id,
        unlocked=result.unlocked,
    )
