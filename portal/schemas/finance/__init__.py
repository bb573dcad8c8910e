from .requests import (
    InvoiceItemRequest, InvoiceCreateRequest, InvoiceUpdateRequest, InvoiceFilterParams,
    ExpenseCreateRequest, ExpenseUpdateRequest, ExpenseFilterParams,
    PayrollItemRequest, PayrollRunCreateRequest, InventoryItemCreateRequest,
    InventoryItemUpdateRequest, CheckoutCreateRequest, CheckoutUpdateRequest
)
from .responses import (
    InvoiceItemResponse, InvoiceResponse, InvoiceStats, InvoiceListResponse, SendInvoiceResponse,
    ExpenseResponse, RecurringProcessResponse, PayrollItemResponse, PayrollRunSummary,
    PayrollRunResponse, FinanceKPIs, CashFlowPoint, CategoryTotal, FinanceSummaryResponse,
    InventoryItemResponse, InventoryCatalogItem, CheckoutItemBrief, CheckoutResponse
)

__all__ = [
    'InvoiceItemRequest', 'InvoiceCreateRequest', 'InvoiceUpdateRequest', 'InvoiceFilterParams',
    'ExpenseCreateRequest', 'ExpenseUpdateRequest', 'ExpenseFilterParams',
    'PayrollItemRequest', 'PayrollRunCreateRequest', 'InventoryItemCreateRequest',
    'InventoryItemUpdateRequest', 'CheckoutCreateRequest', 'CheckoutUpdateRequest',
    'InvoiceItemResponse', 'InvoiceResponse', 'InvoiceStats', 'InvoiceListResponse',
    'SendInvoiceResponse', 'ExpenseResponse', 'RecurringProcessResponse', 'PayrollItemResponse',
    'PayrollRunSummary', 'PayrollRunResponse', 'FinanceKPIs', 'CashFlowPoint', 'CategoryTotal',
    'FinanceSummaryResponse', 'InventoryItemResponse', 'InventoryCatalogItem', 'CheckoutItemBrief',
    'CheckoutResponse'
]
