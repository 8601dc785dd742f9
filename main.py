from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Optional

from fastapi import Depends, FastAPI, Header, HTTPException, Request
from pydantic import ValidationError
from sqlalchemy.orm import Session

from config import get_settings
from csrf import generate_csrf_token, validate_csrf_token
from database import SessionLocal
from models import Budget, MenuItem, Purchase
from money import cents_to_amount
from periods import day_key, utcnow
from records import (
    BudgetType,
    CategorySpending,
    DailyLimit,
    MenuItemRecord,
    RecommendationRecord,
)
from scheduler import SchedulerManager
from schemas import BudgetIn, MenuItemIn, PurchaseIn
from services import (
    BudgetService,
    MenuService,
    PurchaseService,
    RecommendationService,
    SpendingService,
)

app = FastAPI(title="Cafeteria Budget")


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def current_user_id(x_user_id: Optional[str] = Header(default=None)) -> int:
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Missing user")
    try:
        return int(x_user_id)
    except ValueError as exc:
        raise HTTPException(status_code=401, detail="Invalid user") from exc


scheduler_manager = SchedulerManager()


@app.on_event("startup")
def startup_event():
    if get_settings().scheduler_enabled:
        scheduler_manager.start()


@app.on_event("shutdown")
def shutdown_event():
    scheduler_manager.stop()


async def checked_form(request: Request, user_id: int):
    form = await request.form()
    if not validate_csrf_token(str(form.get("csrf_token", "")), user_id):
        raise HTTPException(status_code=400, detail="Invalid CSRF token")
    return form


def parse_amount(raw: object) -> Decimal:
    try:
        return Decimal(str(raw).strip().replace(",", "."))
    except InvalidOperation as exc:
        raise ValueError("Invalid amount") from exc


def budget_payload(budget: Budget, per_day: Optional[str] = None) -> dict[str, object]:
    return {
        "id": budget.id,
        "budget_type": budget.budget_type.value,
        "amount": str(cents_to_amount(budget.amount_cents)),
        "per_day": per_day,
        "is_active": budget.is_active,
        "created_at": budget.created_at.isoformat(),
    }


def limit_payload(limit: Optional[DailyLimit]) -> Optional[dict[str, object]]:
    if limit is None:
        return None
    return {
        "amount": str(limit.amount),
        "budget_type": limit.budget_type.value,
        "budget_amount": str(limit.budget_amount),
        "budget_id": limit.budget_id,
    }


def menu_item_payload(item: MenuItemRecord) -> dict[str, object]:
    return {
        "id": item.id,
        "name": item.name,
        "description": item.description,
        "price": str(item.price),
        "category": item.category,
        "dietary_tags": sorted(item.dietary_tags),
        "available_date": item.available_date.isoformat(),
        "is_available": item.is_available,
    }


def recommendation_payload(record: RecommendationRecord) -> dict[str, object]:
    return {
        "id": record.id,
        "date": record.date.isoformat(),
        "menu_item_ids": list(record.menu_item_ids),
        "total_estimated_cost": str(record.total_estimated_cost),
        "reason": record.reason,
    }


def category_payload(row: CategorySpending) -> dict[str, object]:
    return {"category": row.category, "amount": str(row.amount), "count": row.count}


@app.get("/api/csrf-token")
def api_csrf_token(user_id: int = Depends(current_user_id)):
    return {"csrf_token": generate_csrf_token(user_id)}


@app.get("/api/budgets")
def api_budgets(
    user_id: int = Depends(current_user_id), db: Session = Depends(get_db)
):
    service = BudgetService(db, user_id)
    per_day = service.per_day_amounts()
    return {
        "items": [budget_payload(b, per_day.get(b.id)) for b in service.list_all()],
        "daily_limit": limit_payload(service.daily_limit()),
    }


@app.post("/api/budgets")
async def api_create_budget(
    request: Request,
    user_id: int = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    form = await checked_form(request, user_id)
    try:
        data = BudgetIn(
            budget_type=BudgetType(str(form.get("budget_type") or "daily")),
            amount=parse_amount(form.get("amount") or ""),
        )
    except (ValueError, ValidationError) as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    budget = BudgetService(db, user_id).create(data)
    return budget_payload(budget)


@app.post("/api/budgets/{budget_id}/toggle")
async def api_toggle_budget(
    budget_id: int,
    request: Request,
    user_id: int = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    form = await checked_form(request, user_id)
    service = BudgetService(db, user_id)
    try:
        budget = service.get(budget_id)
        is_active = form.get("is_active")
        target = (not budget.is_active) if is_active is None else is_active == "on"
        budget = service.set_active(budget_id, target)
    except ValueError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return budget_payload(budget)


@app.get("/api/budget-overview")
def api_budget_overview(
    user_id: int = Depends(current_user_id), db: Session = Depends(get_db)
):
    overview = SpendingService(db, user_id).budget_overview()
    summary = overview["summary"]
    alert = overview["alert"]
    return {
        "today": str(summary.today),
        "this_week": str(summary.this_week),
        "daily_average": str(summary.daily_average),
        "daily_limit": limit_payload(overview["limit"]),
        "progress_percent": str(alert.progress_percent),
        "is_over_budget": alert.is_over_budget,
    }


@app.get("/api/menu")
def api_menu(request: Request, db: Session = Depends(get_db)):
    raw = request.query_params.get("date")
    try:
        if raw:
            day = date.fromisoformat(raw)
        else:
            day = day_key(utcnow(), get_settings().timezone)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    items = MenuService(db).available_records(day)
    return {"date": day.isoformat(), "items": [menu_item_payload(i) for i in items]}


@app.post("/api/menu-items")
async def api_create_menu_item(
    request: Request,
    user_id: int = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    form = await checked_form(request, user_id)
    try:
        raw_date = form.get("available_date")
        data = MenuItemIn(
            name=str(form.get("name") or ""),
            description=form.get("description") or None,
            price=parse_amount(form.get("price") or ""),
            category=str(form.get("category") or ""),
            dietary_tags=[
                t for t in str(form.get("dietary_tags") or "").split(",") if t.strip()
            ],
            available_date=(
                date.fromisoformat(str(raw_date))
                if raw_date
                else day_key(utcnow(), get_settings().timezone)
            ),
            is_available=form.get("is_available", "on") == "on",
        )
    except (ValueError, ValidationError) as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    item: MenuItem = MenuService(db).create(data)
    return menu_item_payload(item.to_record())


@app.post("/api/menu-items/{item_id}/availability")
async def api_menu_item_availability(
    item_id: int,
    request: Request,
    user_id: int = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    form = await checked_form(request, user_id)
    try:
        item = MenuService(db).set_availability(
            item_id, form.get("is_available") == "on"
        )
    except ValueError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return menu_item_payload(item.to_record())


@app.get("/api/recommendation")
def api_recommendation(
    user_id: int = Depends(current_user_id), db: Session = Depends(get_db)
):
    record, items = RecommendationService(db, user_id).today()
    if record is None:
        return {"recommendation": None, "items": []}
    return {
        "recommendation": recommendation_payload(record),
        "items": [menu_item_payload(i) for i in items],
    }


@app.post("/api/purchases")
async def api_record_purchase(
    request: Request,
    user_id: int = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    form = await checked_form(request, user_id)
    try:
        data = PurchaseIn(
            menu_item_id=int(form["menu_item_id"]),
            quantity=int(form.get("quantity") or 1),
        )
    except (KeyError, ValueError, ValidationError) as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    try:
        purchase: Purchase = PurchaseService(db, user_id).record(data)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return {
        "id": purchase.id,
        "menu_item_id": purchase.menu_item_id,
        "amount": str(cents_to_amount(purchase.amount_cents)),
        "quantity": purchase.quantity,
        "transaction_date": purchase.transaction_date.isoformat(),
    }


@app.get("/api/analytics")
def api_analytics(
    user_id: int = Depends(current_user_id), db: Session = Depends(get_db)
):
    data = SpendingService(db, user_id).analytics()
    return {
        "window_days": data.window_days,
        "total_spent": str(data.total_spent),
        "transaction_count": data.transaction_count,
        "average_per_transaction": str(data.average_per_transaction),
        "daily_average": str(data.daily_average),
        "daily_series": [
            {"date": row.day.isoformat(), "amount": str(row.amount)}
            for row in data.daily_series
        ],
        "categories": [category_payload(row) for row in data.categories],
    }


def main():
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=False)


if __name__ == "__main__":
    main()
