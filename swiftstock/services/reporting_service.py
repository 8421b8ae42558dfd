from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from swiftstock.auth import Action, Principal, authorize, store_scope
from swiftstock.errors import ValidationError
from swiftstock.models import Cart, CartItem, Product, Sale, SaleItem, SaleStatus, as_utc
from swiftstock.services.pricing_service import money

MAX_ANALYTICS_DAYS = 366
TOP_PRODUCTS = 5
RECENT_SALES = 10


@dataclass(frozen=True)
class TrendPoint:
    date: date
    sales: int
    revenue: Decimal


# Pending storefront orders are not revenue until completed.
def _completed_sales(store_id: int) -> tuple:
    return Sale.store_id == store_id, Sale.status == SaleStatus.COMPLETED


def _day_bounds(day: date) -> tuple[datetime, datetime]:
    start = datetime.combine(day, time.min, tzinfo=timezone.utc)
    return start, start + timedelta(days=1)


def analytics_window(days: int, *, today: date) -> tuple[date, date]:
    """Trailing window ending today: ``days`` calendar days including today."""
    if days < 1 or days > MAX_ANALYTICS_DAYS:
        raise ValidationError(f'days must be between 1 and {MAX_ANALYTICS_DAYS}')
    return today - timedelta(days=days - 1), today


def fill_trend(rows: list[tuple[datetime, Decimal]], *, start: date, end: date) -> list[TrendPoint]:
    counts: dict[date, int] = defaultdict(int)
    revenue: dict[date, Decimal] = defaultdict(lambda: Decimal('0'))
    for created_at, total in rows:
        day = as_utc(created_at).date()
        counts[day] += 1
        revenue[day] += Decimal(total)

    points = []
    day = start
    while day <= end:
        points.append(TrendPoint(date=day, sales=counts.get(day, 0), revenue=money(revenue.get(day, Decimal('0')))))
        day += timedelta(days=1)
    return points


def dashboard_stats(db: Session, *, principal: Principal, today: date | None = None) -> dict:
    store_id = store_scope(principal)
    authorize(principal, Action.VIEW_REPORTS, store_id)
    today = today or datetime.now(tz=timezone.utc).date()
    day_start, day_end = _day_bounds(today)

    todays_sales = db.execute(
        select(func.coalesce(func.sum(Sale.total), 0)).where(
            *_completed_sales(store_id),
            Sale.created_at >= day_start,
            Sale.created_at < day_end,
        )
    ).scalar_one()

    active = select(func.count(Product.id)).where(Product.store_id == store_id, Product.is_active.is_(True))
    total_products = db.execute(active).scalar_one()
    low_stock = db.execute(
        active.where(Product.stock_quantity > 0, Product.stock_quantity <= Product.low_stock_threshold)
    ).scalar_one()
    out_of_stock = db.execute(active.where(Product.stock_quantity == 0)).scalar_one()

    recent = db.execute(
        select(Sale)
        .where(*_completed_sales(store_id))
        .options(selectinload(Sale.items))
        .order_by(Sale.created_at.desc(), Sale.id.desc())
        .limit(RECENT_SALES)
    ).scalars().all()

    return {
        'todaysSales': money(todays_sales),
        'totalProducts': total_products,
        'lowStockProducts': low_stock,
        'outOfStockProducts': out_of_stock,
        'recentSales': [
            {
                'id': sale.id,
                'orderNumber': sale.order_number,
                'total': sale.total,
                'createdAt': as_utc(sale.created_at),
                'items': [{'productName': i.product_name, 'quantity': i.quantity} for i in sale.items],
            }
            for sale in recent
        ],
    }


def analytics(db: Session, *, principal: Principal, days: int = 7, today: date | None = None) -> dict:
    store_id = store_scope(principal)
    authorize(principal, Action.VIEW_REPORTS, store_id)
    today = today or datetime.now(tz=timezone.utc).date()
    start_day, end_day = analytics_window(days, today=today)
    window_start, _ = _day_bounds(start_day)
    _, window_end = _day_bounds(end_day)
    in_window = (
        *_completed_sales(store_id),
        Sale.created_at >= window_start,
        Sale.created_at < window_end,
    )

    rows = db.execute(select(Sale.created_at, Sale.total).where(*in_window)).all()
    total_revenue = money(sum((Decimal(total) for _, total in rows), Decimal('0')))
    total_sales = len(rows)
    average = money(total_revenue / total_sales) if total_sales else Decimal('0.00')

    top = db.execute(
        select(
            SaleItem.product_name,
            func.sum(SaleItem.quantity).label('total_sold'),
            func.sum(SaleItem.subtotal).label('revenue'),
        )
        .join(Sale, Sale.id == SaleItem.sale_id)
        .where(*in_window)
        .group_by(SaleItem.product_name)
        .order_by(func.sum(SaleItem.quantity).desc(), SaleItem.product_name.asc())
        .limit(TOP_PRODUCTS)
    ).all()

    trend = fill_trend([(created_at, total) for created_at, total in rows], start=start_day, end=end_day)
    return {
        'totalRevenue': total_revenue,
        'totalSales': total_sales,
        'averageOrderValue': average,
        'topProducts': [
            {'name': name, 'totalSold': int(sold or 0), 'revenue': money(revenue or 0)} for name, sold, revenue in top
        ],
        'salesTrend': [
            {'date': point.date.isoformat(), 'sales': point.sales, 'revenue': point.revenue} for point in trend
        ],
    }


def abandoned_carts(
    db: Session,
    *,
    principal: Principal,
    idle_hours: int = 24,
    now: datetime | None = None,
) -> dict:
    store_id = store_scope(principal)
    authorize(principal, Action.VIEW_REPORTS, store_id)
    now = now or datetime.now(tz=timezone.utc)
    cutoff = now - timedelta(hours=idle_hours)

    rows = db.execute(
        select(Cart.id, Cart.user_id, Cart.updated_at, CartItem.quantity, Product.selling_price)
        .join(CartItem, CartItem.cart_id == Cart.id)
        .join(Product, Product.id == CartItem.product_id)
        .where(Product.store_id == store_id, Cart.updated_at < cutoff)
        .order_by(Cart.updated_at.asc(), Cart.id.asc())
    ).all()

    carts: dict[int, dict] = {}
    for cart_id, user_id, updated_at, qty, price in rows:
        entry = carts.setdefault(
            cart_id,
            {'cartId': cart_id, 'userId': user_id, 'lastUpdated': as_utc(updated_at), 'items': 0, 'value': Decimal('0')},
        )
        entry['items'] += qty
        entry['value'] = money(entry['value'] + Decimal(price) * qty)

    listed = list(carts.values())
    return {
        'carts': listed,
        'count': len(listed),
        'potentialRevenue': money(sum((c['value'] for c in listed), Decimal('0'))),
    }
