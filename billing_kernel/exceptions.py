"""
Typed Exception Hierarchy for the Billing Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers (an HTTP layer, a CLI, a batch job) must be able to react to a
billing error without parsing its message.  Every error therefore has:

  1. A TYPED exception class (catch by type, not message)
  2. A CODE class attribute (machine-readable, API-safe)
  3. Structured DATA as attributes (not just a message string)

Example:
    try:
        orchestrator.transition_sales_order(order_id, "accept")
    except InvalidTransitionError as e:
        api_response(
            code=e.code,
            current=e.current_status,
            attempted=e.action,
        )

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

All exceptions inherit from BillingKernelError:

    BillingKernelError (base)
    |
    +-- ValidationError
    |   +-- InvalidAmountError
    |   +-- InvalidQuantityError
    |   +-- InvalidTaxRateError
    |   +-- EmptyDocumentError
    |   +-- InvalidDateRangeError
    |   +-- InvalidActionError
    |   +-- FieldTooLongError
    |
    +-- NotFoundError
    |   +-- CustomerNotFoundError
    |   +-- InventoryItemNotFoundError
    |   +-- SalesOrderNotFoundError
    |   +-- InvoiceNotFoundError
    |
    +-- LifecycleError
    |   +-- InvalidTransitionError
    |   +-- OrderNotAcceptableError
    |
    +-- IntegrityViolationError
    |   +-- TotalsMismatchError
    |
    +-- ConcurrencyError
        +-- ConflictError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Validation      | INVALID_AMOUNT              | Negative/float/NaN amount or price
                | INVALID_QUANTITY            | Quantity not an integer >= 1
                | INVALID_TAX_RATE            | Rate outside 0-100 or > 2 decimals
                | EMPTY_DOCUMENT              | Document with no line items
                | INVALID_DATE_RANGE          | due_date before issue_date
                | INVALID_ACTION              | Unknown lifecycle action name
                | FIELD_TOO_LONG              | Text longer than its column allows
----------------|-----------------------------|-----------------------------------------
Not found       | CUSTOMER_NOT_FOUND          | Customer id doesn't exist
                | INVENTORY_ITEM_NOT_FOUND    | Catalog item id doesn't exist
                | SALES_ORDER_NOT_FOUND       | Sales order id doesn't exist
                | INVOICE_NOT_FOUND           | Invoice id doesn't exist
----------------|-----------------------------|-----------------------------------------
Lifecycle       | INVALID_TRANSITION          | Transition not in the status table
                | ORDER_NOT_ACCEPTABLE        | Converting a non-ACCEPTED order
----------------|-----------------------------|-----------------------------------------
Integrity       | TOTALS_MISMATCH             | Copied lines disagree with stored totals
----------------|-----------------------------|-----------------------------------------
Concurrency     | CONFLICT                    | Lock/serialization failure or race

===============================================================================
HANDLING PATTERNS
===============================================================================

1. ValidationError and NotFoundError are raised before anything is written.
2. InvalidTransitionError leaves the stored status untouched.
3. ConflictError means nothing was committed: the caller may retry the whole
   operation.  The kernel never retries on its own.
"""


class BillingKernelError(Exception):
    """
    Base exception for all billing kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "BILLING_KERNEL_ERROR"


# Validation exceptions


class ValidationError(BillingKernelError):
    """Base exception for malformed or out-of-range input."""

    code: str = "VALIDATION_ERROR"


class InvalidAmountError(ValidationError):
    """A monetary amount is negative where it must not be, or not a valid number."""

    code: str = "INVALID_AMOUNT"

    def __init__(self, value: object, reason: str):
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid amount {value!r}: {reason}")


class InvalidQuantityError(ValidationError):
    """A line quantity is not a positive integer."""

    code: str = "INVALID_QUANTITY"

    def __init__(
        self, quantity: object, minimum: int = 1, maximum: int | None = None
    ):
        self.quantity = quantity
        self.minimum = minimum
        self.maximum = maximum
        upper = f" and <= {maximum}" if maximum is not None else ""
        super().__init__(
            f"Quantity must be an integer >= {minimum}{upper}, got {quantity!r}"
        )


class InvalidTaxRateError(ValidationError):
    """A tax rate is outside 0-100 or carries more than two decimal places."""

    code: str = "INVALID_TAX_RATE"

    def __init__(self, rate: object, reason: str):
        self.rate = rate
        self.reason = reason
        super().__init__(f"Invalid tax rate {rate!r}: {reason}")


class EmptyDocumentError(ValidationError):
    """A document or totals computation was given no line items."""

    code: str = "EMPTY_DOCUMENT"

    def __init__(self, document_type: str | None = None):
        self.document_type = document_type
        subject = document_type or "document"
        super().__init__(f"A {subject} requires at least one line item")


class InvalidDateRangeError(ValidationError):
    """Invoice due date precedes its issue date."""

    code: str = "INVALID_DATE_RANGE"

    def __init__(self, issue_date: str, due_date: str):
        self.issue_date = issue_date
        self.due_date = due_date
        super().__init__(
            f"Due date {due_date} is before issue date {issue_date}"
        )


class InvalidActionError(ValidationError):
    """A lifecycle action name is not known for the document type."""

    code: str = "INVALID_ACTION"

    def __init__(self, document_type: str, action: str):
        self.document_type = document_type
        self.action = action
        super().__init__(f"Unknown {document_type} action: {action!r}")


class FieldTooLongError(ValidationError):
    """A text field (classification code, place of supply) does not fit its column."""

    code: str = "FIELD_TOO_LONG"

    def __init__(self, field: str, length: int, max_length: int):
        self.field = field
        self.length = length
        self.max_length = max_length
        super().__init__(
            f"{field} is {length} characters long; at most {max_length} allowed"
        )


# Not-found exceptions


class NotFoundError(BillingKernelError):
    """Base exception for unknown references."""

    code: str = "NOT_FOUND"


class CustomerNotFoundError(NotFoundError):
    """Customer with given ID was not found."""

    code: str = "CUSTOMER_NOT_FOUND"

    def __init__(self, customer_id: str):
        self.customer_id = customer_id
        super().__init__(f"Customer not found: {customer_id}")


class InventoryItemNotFoundError(NotFoundError):
    """Inventory item with given ID was not found."""

    code: str = "INVENTORY_ITEM_NOT_FOUND"

    def __init__(self, inventory_item_id: str):
        self.inventory_item_id = inventory_item_id
        super().__init__(f"Inventory item not found: {inventory_item_id}")


class SalesOrderNotFoundError(NotFoundError):
    """Sales order with given ID was not found."""

    code: str = "SALES_ORDER_NOT_FOUND"

    def __init__(self, order_id: str):
        self.order_id = order_id
        super().__init__(f"Sales order not found: {order_id}")


class InvoiceNotFoundError(NotFoundError):
    """Invoice with given ID was not found."""

    code: str = "INVOICE_NOT_FOUND"

    def __init__(self, invoice_id: str):
        self.invoice_id = invoice_id
        super().__init__(f"Invoice not found: {invoice_id}")


# Lifecycle exceptions


class LifecycleError(BillingKernelError):
    """Base exception for document status machine violations."""

    code: str = "LIFECYCLE_ERROR"


class InvalidTransitionError(LifecycleError):
    """The requested status change is not in the document's transition table."""

    code: str = "INVALID_TRANSITION"

    def __init__(
        self,
        document_type: str,
        current_status: str,
        action: str,
        target_status: str | None = None,
        document_id: str | None = None,
    ):
        self.document_type = document_type
        self.current_status = current_status
        self.action = action
        self.target_status = target_status
        self.document_id = document_id
        where = f" {document_id}" if document_id else ""
        super().__init__(
            f"Cannot {action} {document_type}{where} in status {current_status}"
        )


class OrderNotAcceptableError(LifecycleError):
    """Only an ACCEPTED sales order can be converted to an invoice."""

    code: str = "ORDER_NOT_ACCEPTABLE"

    def __init__(self, order_id: str, status: str):
        self.order_id = order_id
        self.status = status
        super().__init__(
            f"Sales order {order_id} is {status}; only ACCEPTED orders can be invoiced"
        )


# Integrity exceptions


class IntegrityViolationError(BillingKernelError):
    """Base exception for monetary integrity violations."""

    code: str = "INTEGRITY_VIOLATION"


class TotalsMismatchError(IntegrityViolationError):
    """Recomputed totals disagree with the totals stored on the source document."""

    code: str = "TOTALS_MISMATCH"

    def __init__(self, document_id: str, expected: dict, actual: dict):
        self.document_id = document_id
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Totals mismatch for {document_id}: expected {expected}, got {actual}"
        )


# Concurrency exceptions


class ConcurrencyError(BillingKernelError):
    """Base exception for concurrency-related errors."""

    code: str = "CONCURRENCY_ERROR"


class ConflictError(ConcurrencyError):
    """A concurrent writer won the race; nothing was committed."""

    code: str = "CONFLICT"

    def __init__(self, operation: str, detail: str = ""):
        self.operation = operation
        self.detail = detail
        suffix = f": {detail}" if detail else ""
        super().__init__(
            f"Conflict during {operation}; safe to retry{suffix}"
        )
