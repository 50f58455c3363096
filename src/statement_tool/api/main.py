from fastapi import Depends, FastAPI, HTTPException
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response
from pydantic import BaseModel, Field
from typing import List, Optional
import json
import logging
import sys
from pathlib import Path

# Add src to path for internal imports
src_path = Path(__file__).parent.parent.parent
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))

from statement_tool.config.logging import configure_logging
from statement_tool.engine import InvoiceItem, next_serial, resolve_price_with_trace
from statement_tool.engine.invoice_engine import InvoiceStateError
from statement_tool.engine.models import PricingRule, PricingTier
from statement_tool.reports.periods import parse_quarter_key
from statement_tool.reports.revenue import PERIOD_KINDS, RevenueReport, to_csv, to_excel
from statement_tool.services.invoice_service import InvoiceService
from statement_tool.api.catalog_api import customers_router, products_router, targets_router
from statement_tool.api.rules_api import router as rules_router, TierModel
from statement_tool.api.state import get_invoice_service

configure_logging()
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Statement Tool API",
    description="Backend API for statements of account, pricing rules and revenue reports",
    version="1.0.0"
)

# Enable CORS for frontend development
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include rules and catalog management APIs
app.include_router(rules_router)
app.include_router(customers_router)
app.include_router(products_router)
app.include_router(targets_router)

REPORT_FORMATS = ("json", "csv", "xlsx")


class RuleDocument(BaseModel):
    """A pricing rule passed by value with the request."""
    id: str = ""
    product_id: str
    customer_id: Optional[str] = None
    price_category: Optional[str] = None
    specification: Optional[str] = None
    base_price: float
    tiers: List[TierModel] = []
    is_active: bool = True


class ResolveRequest(BaseModel):
    product_id: str
    quantity: int = Field(gt=0)
    specification: Optional[str] = None
    customer_id: Optional[str] = None
    customer_price_category: Optional[str] = None
    # None means "use the stored rules"
    rules: Optional[List[RuleDocument]] = None


class SerialRequest(BaseModel):
    customer_id: str
    customer_tier: Optional[str] = None
    prior_serials: Optional[List[str]] = None


class LineRequest(BaseModel):
    customer_name: Optional[str] = None
    description: str
    specification: str = ""
    quantity: int = Field(default=1, gt=0)


class ItemModel(BaseModel):
    description: str = ""
    specification: str = ""
    quantity: int = 1
    unit_price: float = 0.0
    remark: str = ""


class CreateInvoiceRequest(BaseModel):
    customer_name: str
    items: List[ItemModel] = []


class SignRequest(BaseModel):
    signature_base64: str


class BatchSignRequest(BaseModel):
    invoice_ids: List[str]
    signature_base64: str


def _rule_docs(rules: List[RuleDocument]):
    return [
        PricingRule(
            id=r.id, product_id=r.product_id, customer_id=r.customer_id,
            price_category=r.price_category, specification=r.specification,
            base_price=r.base_price, is_active=r.is_active,
            tiers=[PricingTier(**t.model_dump()) for t in r.tiers],
        )
        for r in rules
    ]


@app.get("/")
async def root():
    return {"status": "online", "message": "Statement Tool API Active"}


@app.post("/pricing/resolve")
async def resolve(req: ResolveRequest, service: InvoiceService = Depends(get_invoice_service)):
    rules = _rule_docs(req.rules) if req.rules is not None else service.load_rules()
    resolution = resolve_price_with_trace(
        product_id=req.product_id,
        quantity=req.quantity,
        specification=req.specification,
        customer_id=req.customer_id,
        customer_price_category=req.customer_price_category,
        rules=rules,
    )
    return jsonable_encoder(resolution)


@app.post("/serials/next")
async def serial(req: SerialRequest, service: InvoiceService = Depends(get_invoice_service)):
    if req.prior_serials is not None:
        prior = [{'serialNumber': s} for s in req.prior_serials]
    else:
        prior = service.load_invoices()
    return {"serial_number": next_serial(req.customer_id, req.customer_tier, prior)}


@app.post("/invoices/price-line")
async def price_line(req: LineRequest, service: InvoiceService = Depends(get_invoice_service)):
    engine = service.engine()
    customer = engine.find_customer(req.customer_name)
    line = engine.price_line(
        InvoiceItem(description=req.description, specification=req.specification, quantity=req.quantity),
        customer,
    )
    return jsonable_encoder(line)


@app.get("/invoices")
async def list_invoices(status: Optional[str] = None, service: InvoiceService = Depends(get_invoice_service)):
    invoices = service.load_invoices()
    if status:
        invoices = [inv for inv in invoices if inv.status == status]
    return jsonable_encoder(invoices)


@app.post("/invoices", status_code=201)
async def create_invoice(req: CreateInvoiceRequest, service: InvoiceService = Depends(get_invoice_service)):
    items = [InvoiceItem(**item.model_dump()) for item in req.items]
    try:
        return jsonable_encoder(service.create_invoice(req.customer_name, items))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@app.get("/invoices/{invoice_id}")
async def get_invoice(invoice_id: str, service: InvoiceService = Depends(get_invoice_service)):
    try:
        return jsonable_encoder(service.get_invoice(invoice_id))
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Invoice '{invoice_id}' not found")


@app.post("/invoices/{invoice_id}/save")
async def save_invoice(invoice_id: str, service: InvoiceService = Depends(get_invoice_service)):
    try:
        return jsonable_encoder(service.save_invoice(service.get_invoice(invoice_id)))
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Invoice '{invoice_id}' not found")


@app.post("/invoices/{invoice_id}/sign")
async def sign_invoice(invoice_id: str, req: SignRequest, service: InvoiceService = Depends(get_invoice_service)):
    try:
        return jsonable_encoder(service.sign_invoice(invoice_id, req.signature_base64))
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Invoice '{invoice_id}' not found")
    except InvoiceStateError as e:
        raise HTTPException(status_code=400, detail=str(e))


@app.post("/invoices/batch-sign")
async def batch_sign(req: BatchSignRequest, service: InvoiceService = Depends(get_invoice_service)):
    try:
        signed = service.batch_sign(req.invoice_ids, req.signature_base64)
    except InvoiceStateError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"signed": [inv.id for inv in signed], "count": len(signed)}


@app.delete("/invoices/{invoice_id}")
async def delete_invoice(invoice_id: str, service: InvoiceService = Depends(get_invoice_service)):
    try:
        service.delete_invoice(invoice_id)
        return {"success": True}
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Invoice '{invoice_id}' not found")


@app.get("/reports/{kind}/{key}")
async def revenue_report(
    kind: str,
    key: str,
    format: str = "json",
    service: InvoiceService = Depends(get_invoice_service),
):
    if kind not in PERIOD_KINDS:
        raise HTTPException(status_code=404, detail=f"Unknown report period '{kind}'")
    if format not in REPORT_FORMATS:
        raise HTTPException(status_code=400, detail=f"Unknown report format '{format}'")

    report = RevenueReport(service.load_invoices())
    try:
        customers = report.customer_stats(kind, key)
        growth = report.growth(kind, key)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    if format == "csv":
        return Response(
            content=to_csv(customers),
            media_type="text/csv",
            headers={"Content-Disposition": f'attachment; filename="revenue_{key}.csv"'},
        )
    if format == "xlsx":
        sheets = {'Customers': customers, 'Products': report.product_stats(kind, key)}
        if kind != 'month':
            sheets['Monthly'] = report.monthly_breakdown(kind, key)
        return Response(
            content=to_excel(sheets),
            media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
            headers={"Content-Disposition": f'attachment; filename="revenue_{key}.xlsx"'},
        )

    target = None
    if kind == 'quarter':
        year, quarter = parse_quarter_key(key)
        target = report.target_progress(service.load_targets(), year, quarter)
    elif kind == 'year':
        target = report.target_progress(service.load_targets(), int(key))

    return {
        "period": kind,
        "key": key,
        "total": report.total(kind, key),
        "invoice_count": int(len(report.filter_period(kind, key))),
        "growth": growth,
        "target": target,
        "customers": json.loads(customers.to_json(orient="records", force_ascii=False)),
    }
