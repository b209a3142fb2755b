# smartwallet/main.py
import logging
from contextlib import asynccontextmanager
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv
from fastapi import APIRouter, Depends, FastAPI, Header, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import BaseModel, Field

from .config import Settings, load_settings
from .currency import UnsupportedCurrency
from .db import StorageError
from .export import export_transactions_csv
from .models import Bill, BillIn, NotifyIn, Transaction, TransactionIn
from .notify import REMINDER_TITLE
from .reminders import classify_bill
from .services import Services, build_services
from .wallet import pass_file
from .weather import spending_insights

# ----------------------------
# Env & logging
# ----------------------------
load_dotenv()

logger = logging.getLogger("smartwallet")


# ----------------------------
# Request bodies
# ----------------------------
class AnalyzeIn(BaseModel):
    transactions: Optional[List[Dict[str, Any]]] = None  # defaults to the user's stored ones
    include_context: bool = False
    city: str = "New York"


class ReceiptIn(BaseModel):
    text: str = Field(..., min_length=1)


class AskIn(BaseModel):
    query: str = Field(..., min_length=1)
    context: Dict[str, Any] = Field(default_factory=dict)


class BudgetIn(BaseModel):
    income: float = Field(..., ge=0)
    expenses: List[Dict[str, Any]] = Field(default_factory=list)


class LoyaltyIn(BaseModel):
    balance: float


class MembershipIn(BaseModel):
    title: str
    subtitle: str
    member_number: str
    expiry_date: str


class EventIn(BaseModel):
    name: str
    venue: str
    date: str
    time: str
    seat: Optional[str] = None


class InterestsIn(BaseModel):
    interests: List[str] = Field(default_factory=lambda: ["business"])


# ----------------------------
# Dependencies
# ----------------------------
def get_services(request: Request) -> Services:
    return request.app.state.services


def verify_key(request: Request, x_api_key: str = Header(default="")):
    api_key = request.app.state.settings.api_key
    if api_key and x_api_key != api_key:
        raise HTTPException(status_code=401, detail="Unauthorized")


def current_user(x_user_id: str = Header(default="")) -> str:
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Missing X-User-Id")
    return x_user_id


def _owned_bill(svc: Services, bill_id: str, user_id: str) -> Bill:
    b = svc.bills.get(bill_id)
    if not b or b.user_id != user_id:
        raise HTTPException(404, "Bill not found")
    return b


# ----------------------------
# Public endpoints (no API key)
# ----------------------------
public = APIRouter()


@public.get("/", summary="Health (root)")
def root_health(request: Request):
    settings = request.app.state.settings
    payload = {
        "ok": True,
        "service": request.app.title,
        "time": datetime.utcnow().isoformat(),
    }
    if settings.debug:
        payload["db_path"] = settings.db_path
    return payload


@public.get("/health", summary="Health")
def health(request: Request):
    # Alias for convenience
    return root_health(request)


# ----------------------------
# Protected endpoints (X-API-KEY when configured, X-User-Id always)
# ----------------------------
api = APIRouter(dependencies=[Depends(verify_key)])


# Bills & reminders
@api.get("/bills", response_model=List[Bill], summary="List bills")
def list_bills(user_id: str = Depends(current_user), svc: Services = Depends(get_services)):
    return svc.bills.list(user_id)


@api.post("/bills", response_model=Bill, status_code=201, summary="Add a bill")
def add_bill(bill_in: BillIn, user_id: str = Depends(current_user), svc: Services = Depends(get_services)):
    bill = Bill(**bill_in.model_dump(), user_id=user_id)
    return svc.bills.add(bill)


@api.post("/bills/{bill_id}/mark_paid", summary="Mark a bill as paid")
def mark_paid(bill_id: str, user_id: str = Depends(current_user), svc: Services = Depends(get_services)):
    _owned_bill(svc, bill_id, user_id)
    svc.bills.mark_paid(bill_id)
    cancelled = svc.reminders.cancel_for_bill(bill_id)
    return {"ok": True, "bill_id": bill_id, "is_paid": True, "reminder_cancelled": cancelled}


@api.delete("/bills/{bill_id}", summary="Delete a bill")
def delete_bill(bill_id: str, user_id: str = Depends(current_user), svc: Services = Depends(get_services)):
    _owned_bill(svc, bill_id, user_id)
    svc.bills.delete(bill_id)
    svc.reminders.cancel_for_bill(bill_id)
    return {"ok": True, "bill_id": bill_id}


@api.get("/reminders", summary="Current reminders")
def reminders(user_id: str = Depends(current_user), svc: Services = Depends(get_services)):
    return {"items": svc.reminders.upcoming(user_id)}


@api.post("/reminders/schedule", summary="Queue reminder notifications")
def schedule_reminders(user_id: str = Depends(current_user), svc: Services = Depends(get_services)):
    items = svc.reminders.schedule(user_id)
    return {"items": items, "scheduled": svc.reminders.scheduled_ids()}


@api.post("/notify", summary="Notify about a bill now")
def notify(n: NotifyIn, user_id: str = Depends(current_user), svc: Services = Depends(get_services)):
    b = _owned_bill(svc, n.bill_id, user_id)
    reminder = classify_bill(b, datetime.now())
    if reminder:
        msg = reminder.message
    else:
        msg = f"Reminder: {b.name} amount ${b.amount:.2f} due {b.due_date.isoformat()}"
    result = svc.sink.send(REMINDER_TITLE, msg, tag=f"reminder_{b.id}", channel=n.channel, to=n.to)
    return {"ok": True, "sent_via": result, "message": msg}


# Transactions
@api.get("/transactions", response_model=List[Transaction])
def list_transactions(user_id: str = Depends(current_user), svc: Services = Depends(get_services)):
    return svc.transactions.list(user_id)


@api.post("/transactions", response_model=Transaction, status_code=201)
def save_transaction(tx_in: TransactionIn, user_id: str = Depends(current_user),
                     svc: Services = Depends(get_services)):
    return svc.transactions.save(Transaction(**tx_in.model_dump(), user_id=user_id))


@api.get("/transactions/export.csv", response_class=PlainTextResponse)
def export_transactions(user_id: str = Depends(current_user), svc: Services = Depends(get_services)):
    body = export_transactions_csv(svc.transactions.list(user_id))
    return PlainTextResponse(
        body,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="smart-wallet-transactions-{date.today()}.csv"'},
    )


# Currency
@api.get("/currency/currencies")
def currencies(svc: Services = Depends(get_services)):
    return svc.currency.supported()


@api.get("/currency/rates")
def rates(base: str = "USD", svc: Services = Depends(get_services)):
    base = base.upper()
    try:
        return {"base": base, "rates": svc.currency.get_rates(base)}
    except UnsupportedCurrency:
        raise HTTPException(400, f"Unsupported currency: {base}")


@api.get("/currency/convert")
def convert(
    amount: float,
    from_currency: str = Query(..., alias="from"),
    to_currency: str = Query(..., alias="to"),
    svc: Services = Depends(get_services),
):
    return svc.currency.convert(amount, from_currency.upper(), to_currency.upper())


@api.get("/currency/history/{code}")
def currency_history(code: str, days: int = Query(30, ge=1, le=365), svc: Services = Depends(get_services)):
    return svc.currency.historical_rates(code.upper(), days)


# Stocks
@api.get("/stocks/quote/{symbol}")
def stock_quote(symbol: str, svc: Services = Depends(get_services)):
    return svc.stocks.quote(symbol)


@api.get("/stocks/quotes")
def stock_quotes(symbols: str = Query(..., description="Comma-separated symbols"),
                 svc: Services = Depends(get_services)):
    return svc.stocks.quotes([s.strip().upper() for s in symbols.split(",") if s.strip()])


@api.get("/stocks/chart/{symbol}")
def stock_chart(symbol: str, svc: Services = Depends(get_services)):
    return svc.stocks.chart(symbol)


@api.get("/stocks/market")
def market(refresh: bool = False, svc: Services = Depends(get_services)):
    if refresh:
        svc.stocks.clear_cache()
    return svc.stocks.market_overview()


@api.get("/stocks/search")
def stock_search(q: str = Query(..., min_length=1), svc: Services = Depends(get_services)):
    return svc.stocks.search(q)


# Weather
@api.get("/weather")
def weather(city: str = "New York", svc: Services = Depends(get_services)):
    return svc.weather.current(city)


@api.get("/weather/insights")
def weather_insights(city: str = "New York", svc: Services = Depends(get_services)):
    w = svc.weather.current(city)
    return {"weather": w, "insights": spending_insights(w)}


# News
@api.get("/news")
def news(category: str = "business", svc: Services = Depends(get_services)):
    return svc.news.financial_news(category)


@api.post("/news/personalized")
def personalized_news(body: InterestsIn, svc: Services = Depends(get_services)):
    return svc.news.personalized(body.interests)


@api.get("/news/sentiment")
def news_sentiment(svc: Services = Depends(get_services)):
    return svc.news.market_sentiment()


# AI advisor
@api.post("/ai/analyze")
def ai_analyze(body: AnalyzeIn, user_id: str = Depends(current_user), svc: Services = Depends(get_services)):
    txs = body.transactions
    if txs is None:
        txs = [t.model_dump(mode="json") for t in svc.transactions.list(user_id)]
    context = None
    if body.include_context:
        context = {
            "weather": svc.weather.current(body.city).model_dump(),
            "market_sentiment": svc.news.market_sentiment().model_dump(),
        }
    return svc.advisor.analyze_spending(txs, context)


@api.post("/ai/receipt")
def ai_receipt(body: ReceiptIn, svc: Services = Depends(get_services)):
    return svc.advisor.process_receipt(body.text)


@api.post("/ai/ask")
def ai_ask(body: AskIn, svc: Services = Depends(get_services)):
    return {"answer": svc.advisor.answer(body.query, body.context)}


@api.post("/ai/budget")
def ai_budget(body: BudgetIn, svc: Services = Depends(get_services)):
    return svc.advisor.budget_recommendations(body.income, body.expenses)


# Mock bank linking
@api.get("/bank/accounts")
def bank_accounts(connected: bool = False, svc: Services = Depends(get_services)):
    return svc.bank.connected_accounts() if connected else svc.bank.available_accounts()


@api.post("/bank/accounts/{account_id}/connect")
def bank_connect(account_id: str, svc: Services = Depends(get_services)):
    if not svc.bank.connect(account_id):
        raise HTTPException(404, "Account not found")
    return {"ok": True, "account_id": account_id, "is_connected": True}


@api.post("/bank/accounts/{account_id}/disconnect")
def bank_disconnect(account_id: str, svc: Services = Depends(get_services)):
    if not svc.bank.disconnect(account_id):
        raise HTTPException(404, "Account not found")
    return {"ok": True, "account_id": account_id, "is_connected": False}


@api.get("/bank/accounts/{account_id}/transactions")
def bank_account_transactions(account_id: str, svc: Services = Depends(get_services)):
    return svc.bank.account_transactions(account_id)


@api.get("/bank/transactions")
def bank_transactions(svc: Services = Depends(get_services)):
    return svc.bank.all_transactions()


@api.post("/bank/sync")
def bank_sync(svc: Services = Depends(get_services)):
    return svc.bank.sync()


# Wallet passes
@api.get("/wallet/passes")
def wallet_passes(user_id: str = Depends(current_user), svc: Services = Depends(get_services)):
    return svc.wallet.user_passes(user_id)


@api.post("/wallet/passes/loyalty", status_code=201)
def wallet_loyalty(body: LoyaltyIn, user_id: str = Depends(current_user), svc: Services = Depends(get_services)):
    return svc.wallet.create_loyalty(user_id, body.balance)


@api.post("/wallet/passes/membership", status_code=201)
def wallet_membership(body: MembershipIn, user_id: str = Depends(current_user),
                      svc: Services = Depends(get_services)):
    return svc.wallet.create_membership(user_id, body.title, body.subtitle, body.member_number, body.expiry_date)


@api.post("/wallet/passes/event", status_code=201)
def wallet_event(body: EventIn, user_id: str = Depends(current_user), svc: Services = Depends(get_services)):
    return svc.wallet.create_event_ticket(user_id, body.name, body.venue, body.date, body.time, body.seat)


def _owned_pass(svc: Services, pass_id: str, user_id: str):
    p = svc.wallet.get(pass_id)
    if not p or p.user_id != user_id:
        raise HTTPException(404, "Pass not found")
    return p


@api.post("/wallet/passes/{pass_id}/balance")
def wallet_balance(pass_id: str, body: LoyaltyIn, user_id: str = Depends(current_user),
                   svc: Services = Depends(get_services)):
    _owned_pass(svc, pass_id, user_id)
    if not svc.wallet.update_balance(pass_id, body.balance):
        raise HTTPException(400, "Only loyalty passes carry a balance")
    return svc.wallet.get(pass_id)


@api.delete("/wallet/passes/{pass_id}")
def wallet_deactivate(pass_id: str, user_id: str = Depends(current_user), svc: Services = Depends(get_services)):
    _owned_pass(svc, pass_id, user_id)
    svc.wallet.deactivate(pass_id)
    return {"ok": True, "pass_id": pass_id, "is_active": False}


@api.get("/wallet/passes/{pass_id}/file")
def wallet_pass_file(pass_id: str, user_id: str = Depends(current_user), svc: Services = Depends(get_services)):
    return {"data_url": pass_file(_owned_pass(svc, pass_id, user_id))}


# Investments
@api.get("/portfolio")
def portfolio(user_id: str = Depends(current_user), svc: Services = Depends(get_services)):
    return svc.investments.portfolio(user_id)


@api.get("/portfolio/insights")
def portfolio_insights(user_id: str = Depends(current_user), svc: Services = Depends(get_services)):
    p = svc.investments.portfolio(user_id)
    return svc.investments.insights(p)


# ----------------------------
# App bootstrap
# ----------------------------
def create_app(settings: Optional[Settings] = None, services: Optional[Services] = None) -> FastAPI:
    settings = settings or (services.settings if services else load_settings())

    logging.basicConfig(level=settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if app.state.services is None:
            app.state.services = build_services(settings)
        svc = app.state.services
        svc.start()
        logger.info("Smart Wallet startup: DB_PATH=%s", settings.db_path)
        logger.info(
            "Integrations: gemini=%s alpha_vantage=%s openweather=%s newsapi=%s notify=%s",
            svc.advisor.enabled,
            bool(settings.alpha_vantage_api_key),
            bool(settings.openweather_api_key),
            bool(settings.newsapi_key),
            svc.sink.permission,
        )
        yield
        svc.shutdown()

    app = FastAPI(
        title="Smart Wallet API",
        version="0.1.0",
        docs_url="/docs" if settings.docs_enabled else None,
        redoc_url=None,
        openapi_url="/openapi.json" if settings.docs_enabled else None,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.services = services

    # CORS
    if settings.cors_origins:
        # Credentials + explicit origins
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.cors_origins,
            allow_methods=["GET", "POST", "DELETE"],
            allow_headers=["*"],
            allow_credentials=True,
        )
    else:
        # No credentials when wildcard origins
        app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_methods=["GET", "POST", "DELETE"],
            allow_headers=["*"],
            allow_credentials=False,
        )

    @app.exception_handler(StorageError)
    async def _storage_error(request: Request, exc: StorageError):
        return JSONResponse(status_code=500, content={"detail": "Storage unavailable"})

    app.include_router(public)
    app.include_router(api)
    return app


app = create_app()
