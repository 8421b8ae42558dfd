from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal

from sqlalchemy import and_, func, select
from sqlalchemy.orm import Session

from swiftstock.auth import Action, Principal, authorize, store_scope
from swiftstock.errors import Conflict, NotFound, ValidationError
from swiftstock.models import Purchase, Sale, SaleStatus, TaxPeriod, TaxPeriodStatus, as_utc
from swiftstock.services.audit_service import log_audit
from swiftstock.services.pricing_service import money

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PeriodSummary:
    total_sales: Decimal
    vatable_sales: Decimal
    output_vat: Decimal
    input_vat: Decimal
    vat_payable: Decimal
    sales_count: int
    purchases_count: int


def _utc_range(start: date, end: date) -> tuple[datetime, datetime]:
    return (
        datetime.combine(start, time.min, tzinfo=timezone.utc),
        datetime.combine(end + timedelta(days=1), time.min, tzinfo=timezone.utc),
    )


def _sales_in(period: TaxPeriod):
    lower, upper = _utc_range(period.start_date, period.end_date)
    return and_(
        Sale.store_id == period.store_id,
        Sale.status == SaleStatus.COMPLETED,
        Sale.created_at >= lower,
        Sale.created_at < upper,
    )


def _purchases_in(period: TaxPeriod):
    return and_(
        Purchase.store_id == period.store_id,
        Purchase.purchase_date >= period.start_date,
        Purchase.purchase_date <= period.end_date,
    )


def period_payload(period: TaxPeriod, *, sales_count: int | None = None, purchases_count: int | None = None) -> dict:
    payload = {
        'id': period.id,
        'storeId': period.store_id,
        'startDate': period.start_date.isoformat(),
        'endDate': period.end_date.isoformat(),
        'status': period.status.value,
        'totalSales': period.total_sales,
        'vatableSales': period.vatable_sales,
        'outputVat': period.output_vat,
        'inputVat': period.input_vat,
        'vatPayable': period.vat_payable,
        'closedAt': as_utc(period.closed_at),
        'closedBy': period.closed_by,
    }
    if sales_count is not None:
        payload['_count'] = {'sales': sales_count, 'purchases': purchases_count or 0}
    return payload


def _get_period(db: Session, *, principal: Principal, period_id: int) -> TaxPeriod:
    store_id = store_scope(principal)
    authorize(principal, Action.MANAGE_TAX, store_id)
    period = db.execute(
        select(TaxPeriod).where(TaxPeriod.id == period_id, TaxPeriod.store_id == store_id)
    ).scalar_one_or_none()
    if not period:
        raise NotFound('Tax period not found or access denied')
    return period


def find_overlap(db: Session, *, store_id: int, start: date, end: date) -> TaxPeriod | None:
    # Closed ranges [a, b] and [c, d] overlap iff a <= d and c <= b.
    return db.execute(
        select(TaxPeriod)
        .where(
            TaxPeriod.store_id == store_id,
            TaxPeriod.start_date <= end,
            TaxPeriod.end_date >= start,
        )
        .limit(1)
    ).scalar_one_or_none()


def create_period(db: Session, *, principal: Principal, start: date, end: date, ip: str | None = None) -> TaxPeriod:
    store_id = store_scope(principal)
    authorize(principal, Action.MANAGE_TAX, store_id)
    if end < start:
        raise ValidationError('End date must not be before start date')
    if find_overlap(db, store_id=store_id, start=start, end=end):
        raise Conflict('Tax period overlaps with existing period')

    period = TaxPeriod(store_id=store_id, start_date=start, end_date=end, status=TaxPeriodStatus.OPEN)
    db.add(period)
    db.flush()
    log_audit(
        db,
        store_id=store_id,
        actor_user_id=principal.id,
        entity_type='TaxPeriod',
        entity_id=period.id,
        action='CREATE',
        ip=ip,
        new_value={'start_date': start.isoformat(), 'end_date': end.isoformat(), 'status': 'OPEN'},
    )
    return period


def list_periods(db: Session, *, principal: Principal) -> list[dict]:
    store_id = store_scope(principal)
    authorize(principal, Action.MANAGE_TAX, store_id)
    periods = db.execute(
        select(TaxPeriod).where(TaxPeriod.store_id == store_id).order_by(TaxPeriod.start_date.desc())
    ).scalars().all()
    result = []
    for period in periods:
        sales_count = db.execute(select(func.count(Sale.id)).where(_sales_in(period))).scalar_one()
        purchases_count = db.execute(select(func.count(Purchase.id)).where(_purchases_in(period))).scalar_one()
        result.append(period_payload(period, sales_count=sales_count, purchases_count=purchases_count))
    return result


def summarize(db: Session, period: TaxPeriod) -> PeriodSummary:
    sales = db.execute(select(Sale.total, Sale.subtotal, Sale.tax).where(_sales_in(period))).all()
    purchases = db.execute(select(Purchase.vat_amount).where(_purchases_in(period))).scalars().all()

    total_sales = sum((Decimal(total) for total, _, _ in sales), Decimal('0'))
    vatable_sales = sum((Decimal(subtotal) for _, subtotal, tax in sales if tax > 0), Decimal('0'))
    output_vat = sum((Decimal(tax) for _, _, tax in sales), Decimal('0'))
    input_vat = sum((Decimal(vat) for vat in purchases), Decimal('0'))
    return PeriodSummary(
        total_sales=money(total_sales),
        vatable_sales=money(vatable_sales),
        output_vat=money(output_vat),
        input_vat=money(input_vat),
        vat_payable=money(output_vat - input_vat),
        sales_count=len(sales),
        purchases_count=len(purchases),
    )


def get_period(db: Session, *, principal: Principal, period_id: int) -> dict:
    period = _get_period(db, principal=principal, period_id=period_id)
    summary = summarize(db, period)
    sales = db.execute(select(Sale).where(_sales_in(period)).order_by(Sale.created_at.asc())).scalars().all()
    purchases = db.execute(
        select(Purchase).where(_purchases_in(period)).order_by(Purchase.purchase_date.asc())
    ).scalars().all()

    payload = period_payload(period, sales_count=summary.sales_count, purchases_count=summary.purchases_count)
    payload['summary'] = _summary_payload(summary)
    payload['sales'] = [
        {
            'id': sale.id,
            'orderNumber': sale.order_number,
            'subtotal': sale.subtotal,
            'tax': sale.tax,
            'total': sale.total,
            'createdAt': as_utc(sale.created_at),
        }
        for sale in sales
    ]
    payload['purchases'] = [purchase_payload(p) for p in purchases]
    return payload


def _summary_payload(summary: PeriodSummary) -> dict:
    return {
        'totalSales': summary.total_sales,
        'vatableSales': summary.vatable_sales,
        'outputVat': summary.output_vat,
        'inputVat': summary.input_vat,
        'vatPayable': summary.vat_payable,
        'salesCount': summary.sales_count,
        'purchasesCount': summary.purchases_count,
    }


def close_period(
    db: Session,
    *,
    principal: Principal,
    period_id: int,
    now: datetime | None = None,
    ip: str | None = None,
) -> dict:
    period = _get_period(db, principal=principal, period_id=period_id)
    if period.status == TaxPeriodStatus.CLOSED:
        raise ValidationError('Tax period is already closed')

    summary = summarize(db, period)
    period.status = TaxPeriodStatus.CLOSED
    period.closed_at = now or datetime.now(tz=timezone.utc)
    period.closed_by = principal.id
    period.total_sales = summary.total_sales
    period.vatable_sales = summary.vatable_sales
    period.output_vat = summary.output_vat
    period.input_vat = summary.input_vat
    period.vat_payable = summary.vat_payable
    db.flush()

    log_audit(
        db,
        store_id=period.store_id,
        actor_user_id=principal.id,
        entity_type='TaxPeriod',
        entity_id=period.id,
        action='CLOSE_PERIOD',
        ip=ip,
        old_value={'status': 'OPEN'},
        new_value={'status': 'CLOSED', **{k: str(v) for k, v in _summary_payload(summary).items()}},
    )
    logger.info('Closed tax period %s for store %s: vat payable %s', period.id, period.store_id, summary.vat_payable)

    payload = period_payload(period)
    payload['summary'] = _summary_payload(summary)
    return payload


def purchase_payload(purchase: Purchase) -> dict:
    return {
        'id': purchase.id,
        'supplierName': purchase.supplier_name,
        'invoiceNumber': purchase.invoice_number,
        'date': purchase.purchase_date.isoformat(),
        'netAmount': purchase.net_amount,
        'vatAmount': purchase.vat_amount,
        'total': purchase.total,
        'description': purchase.description,
    }


def record_purchase(
    db: Session,
    *,
    principal: Principal,
    supplier_name: str,
    purchase_date: date,
    net_amount: Decimal,
    vat_amount: Decimal = Decimal('0'),
    invoice_number: str | None = None,
    description: str | None = None,
) -> Purchase:
    store_id = store_scope(principal)
    authorize(principal, Action.MANAGE_TAX, store_id)
    if not (supplier_name or '').strip():
        raise ValidationError('Supplier name is required')
    if net_amount < 0 or vat_amount < 0:
        raise ValidationError('Amounts must be non-negative')

    closed = db.execute(
        select(TaxPeriod.id).where(
            TaxPeriod.store_id == store_id,
            TaxPeriod.status == TaxPeriodStatus.CLOSED,
            TaxPeriod.start_date <= purchase_date,
            TaxPeriod.end_date >= purchase_date,
        )
    ).scalar_one_or_none()
    if closed is not None:
        raise ValidationError('Purchase date falls in a closed tax period')

    purchase = Purchase(
        store_id=store_id,
        supplier_name=supplier_name.strip(),
        invoice_number=invoice_number,
        purchase_date=purchase_date,
        net_amount=money(net_amount),
        vat_amount=money(vat_amount),
        total=money(net_amount) + money(vat_amount),
        description=description,
    )
    db.add(purchase)
    db.flush()
    return purchase


def list_purchases(db: Session, *, principal: Principal, period_id: int | None = None) -> list[dict]:
    store_id = store_scope(principal)
    authorize(principal, Action.MANAGE_TAX, store_id)
    query = select(Purchase).where(Purchase.store_id == store_id)
    if period_id is not None:
        period = _get_period(db, principal=principal, period_id=period_id)
        query = query.where(_purchases_in(period))
    purchases = db.execute(query.order_by(Purchase.purchase_date.desc(), Purchase.id.desc())).scalars().all()
    return [purchase_payload(p) for p in purchases]
