"""JSON API over the same reports, export and assistant used by the web UI."""

import random
from datetime import date
from typing import List, Optional

from fastapi import Depends, FastAPI, HTTPException, status
from fastapi.responses import PlainTextResponse
from fastapi.security import HTTPBasic, HTTPBasicCredentials
from pydantic import BaseModel, Field

from assistant import AssistantResponder
from auth import AuthService, UserSession
from config import get_settings
from data_client import DataClient
from errors import AuthError, DataAccessError, ValidationError
from export import EXPORT_MIME_TYPE, export_filename, monthly_csv
from logger import configure_logging, get_logger, set_user_context
from reports import load_report

settings = get_settings()
configure_logging(settings.log_level, settings.log_file)
log = get_logger("api")

app = FastAPI(title="Wallet Tracker API", version="0.1.0")
security = HTTPBasic()

_client: Optional[DataClient] = None
_auth: Optional[AuthService] = None


def get_client() -> DataClient:
    global _client
    if _client is None:
        _client = DataClient()
    return _client


def get_auth() -> AuthService:
    global _auth
    if _auth is None:
        _auth = AuthService()
    return _auth


def get_rng() -> random.Random:
    return random.Random()


def current_session(
    credentials: HTTPBasicCredentials = Depends(security),
    auth: AuthService = Depends(get_auth),
):
    """Per-request session from HTTP Basic credentials, signed out once the request is done."""
    try:
        session = auth.sign_in(credentials.username, credentials.password)
    except AuthError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
            headers={"WWW-Authenticate": "Basic"},
        )
    except DataAccessError as exc:
        log.exception("Error checking credentials")
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc))
    try:
        yield session
    finally:
        auth.sign_out(session)


class MonthlyRow(BaseModel):
    month: str
    income: float
    expense: float
    net: float


class CategoryRow(BaseModel):
    name: str
    value: float
    color: str


class SummaryResponse(BaseModel):
    monthly: List[MonthlyRow]
    categories: List[CategoryRow]
    total_income: float
    total_expense: float
    net_balance: float


class AssistantRequest(BaseModel):
    message: str = Field(..., min_length=1, description="Free-text question")


class AssistantResponse(BaseModel):
    response: str


@app.get("/reports/summary", response_model=SummaryResponse)
def report_summary(
    today: Optional[date] = None,
    session: UserSession = Depends(current_session),
    client: DataClient = Depends(get_client),
):
    set_user_context(session.user_id)
    report = load_report(client, session, today=today)
    return SummaryResponse(
        monthly=[MonthlyRow(month=m.month, income=m.income, expense=m.expense, net=m.net) for m in report.monthly],
        categories=[CategoryRow(name=c.name, value=c.value, color=c.color) for c in report.categories],
        total_income=report.stats.total_income,
        total_expense=report.stats.total_expense,
        net_balance=report.stats.net_balance,
    )


@app.get("/reports/export.csv", response_class=PlainTextResponse)
def report_export(
    today: Optional[date] = None,
    session: UserSession = Depends(current_session),
    client: DataClient = Depends(get_client),
):
    set_user_context(session.user_id)
    today = today or date.today()
    report = load_report(client, session, today=today)
    return PlainTextResponse(
        monthly_csv(report.monthly),
        media_type=EXPORT_MIME_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{export_filename(today)}"'},
    )


@app.post("/assistant", response_model=AssistantResponse)
def ask_assistant(
    req: AssistantRequest,
    session: UserSession = Depends(current_session),
    client: DataClient = Depends(get_client),
    rng: random.Random = Depends(get_rng),
):
    set_user_context(session.user_id)
    responder = AssistantResponder(client, session, rng=rng, currency=settings.currency, locale=settings.locale)
    try:
        return AssistantResponse(response=responder.respond(req.message))
    except ValidationError as exc:
        raise HTTPException(status_code=422, detail=str(exc))


@app.get("/health")
async def health():
    return {"status": "ok"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("api_server:app", host="0.0.0.0", port=8001, reload=True)
