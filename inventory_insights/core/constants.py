from enum import Enum


class OrderStatus(str, Enum):
    OPEN = "open"
    PAID = "paid"
    CANCELLED = "cancelled"


class StockCountStatus(str, Enum):
    DRAFT = "DRAFT"
    APPROVED = "APPROVED"


class ShiftStatus(str, Enum):
    OPEN = "open"
    CLOSED = "closed"


class TxnType(str, Enum):
    SALE_DEDUCTION = "SALE_DEDUCTION"
    WASTE = "WASTE"
    ADJUSTMENT_OUT = "ADJUSTMENT_OUT"
    ADJUSTMENT_IN = "ADJUSTMENT_IN"
    STOCK_COUNT_ADJUSTMENT = "STOCK_COUNT_ADJUSTMENT"
    REFUND = "REFUND"
    PURCHASE = "PURCHASE"
    TRANSFER_IN = "TRANSFER_IN"
    TRANSFER_OUT = "TRANSFER_OUT"


class RootCause(str, Enum):
    WASTE = "WASTE"
    THEFT = "THEFT"
    OVER_PORTIONING = "OVER_PORTIONING"
    DATA_ERROR = "DATA_ERROR"
    SUPPLIER_VARIANCE = "SUPPLIER_VARIANCE"
    UNKNOWN = "UNKNOWN"


class VarianceReason(str, Enum):
    USAGE = "USAGE"
    WASTE = "WASTE"
    REFUND = "REFUND"
    ADJUSTMENT = "ADJUSTMENT"


class AlertType(str, Enum):
    REPEATED_HIGH_VARIANCE = "REPEATED_HIGH_VARIANCE"
    VARIANCE_SPIKE = "VARIANCE_SPIKE"
    WORSENING_TREND = "WORSENING_TREND"


class AlertSeverity(str, Enum):
    WARNING = "warning"
    CRITICAL = "critical"


class InsightType(str, Enum):
    REPEATED_CANCELLATION_AFTER_PAYMENT = "repeated_cancellation_after_payment"
    EXCESSIVE_DISCOUNTS = "excessive_discounts"
    REPEATED_INVENTORY_ADJUSTMENTS = "repeated_inventory_adjustments"
    LONG_OPEN_SHIFTS = "long_open_shifts"
    NO_SALES_DURING_HOURS = "no_sales_during_hours"


class InsightSeverity(str, Enum):
    FIRST = "first"
    REPEATED = "repeated"


ROOT_CAUSE_OPTIONS = tuple(cause.value for cause in RootCause)

# Manual adjustments only; stock count corrections come from approvals.
MANUAL_ADJUSTMENT_TYPES = (TxnType.ADJUSTMENT_IN, TxnType.ADJUSTMENT_OUT)

CONSUMPTION_TXN_TYPES = (
    TxnType.SALE_DEDUCTION,
    TxnType.WASTE,
    TxnType.ADJUSTMENT_OUT,
    TxnType.STOCK_COUNT_ADJUSTMENT,
)

# Quantities below this are treated as zero variance.
VARIANCE_EPSILON = 0.001

CONFIDENCE_MIN = 40
CONFIDENCE_MAX = 100
MAX_OPERATIONAL_NOTES = 3
DEFAULT_SHIFT_HOURS = 8.0
SHIFT_HOURS_CAP = 24.0
