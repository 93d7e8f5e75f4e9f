"""The seventeen entity types of the JewelVault datastore.

``CATALOG`` lists them in export (sheet) order; ``IMPORT_ORDER`` lists them
parents first, the order the importer must follow so that categories exist
before their sub-categories, orders before their order items, and so on.

Header names are the column names of the backup file and of the tables.
"""

from sqlalchemy import (
    BigInteger,
    Boolean,
    Column,
    DateTime,
    Float,
    MetaData,
    Table,
    Text,
)

from .models import EntityType, FieldDef, FieldType

T = FieldType.TEXT
I = FieldType.INTEGER  # noqa: E741
R = FieldType.REAL
B = FieldType.BOOLEAN
TS = FieldType.TIMESTAMP


def _fields(*columns: str | tuple[str, FieldType] | FieldDef) -> tuple[FieldDef, ...]:
    """Build field defs from bare names (text), ``(name, type)`` pairs or ``FieldDef``s."""
    out = []
    for item in columns:
        if isinstance(item, FieldDef):
            out.append(item)
        elif isinstance(item, tuple):
            out.append(FieldDef(name=item[0], type=item[1]))
        else:
            out.append(FieldDef(name=item))
    return tuple(out)


def _optional(name: str, field_type: FieldType) -> FieldDef:
    return FieldDef(name=name, type=field_type, optional=True)


STORES = EntityType(
    name="StoreEntity",
    table="stores",
    label="stores",
    fields=_fields(
        "storeId", "userId", "proprietor", "name", "email", "phone", "address",
        "registrationNo", "gstinNo", "panNo", "image", ("invoiceNo", I), "upiId",
        _optional("lastUpdated", I),
    ),
    primary_key="storeId",
    natural_key=("storeId",),
    user_field="userId",
    scoped_lookup=False,
    protected_field="storeId",
    protected_by="store",
)

USERS = EntityType(
    name="UsersEntity",
    table="users",
    label="users",
    fields=_fields(
        "id", "name", "email", "mobileNo", "token", "pin", "role", _optional("lastUpdated", I),
    ),
    primary_key="id",
    natural_key=("mobileNo",),
    protected_field="mobileNo",
    protected_by="user",
)

CATEGORIES = EntityType(
    name="CategoryEntity",
    table="categories",
    label="categories",
    fields=_fields("catId", "catName", ("gsWt", R), ("fnWt", R), "userId", "storeId"),
    primary_key="catId",
    natural_key=("userId", "storeId", "catName"),
    user_field="userId",
    store_field="storeId",
)

SUB_CATEGORIES = EntityType(
    name="SubCategoryEntity",
    table="sub_categories",
    label="sub_categories",
    fields=_fields(
        "subCatId", "catId", "userId", "storeId", "catName", "subCatName",
        ("quantity", I), ("gsWt", R), ("fnWt", R),
    ),
    primary_key="subCatId",
    natural_key=("catId", "userId", "storeId", "subCatName"),
    user_field="userId",
    store_field="storeId",
)

ITEMS = EntityType(
    name="ItemEntity",
    table="items",
    label="items",
    fields=_fields(
        "itemId", "itemAddName", "catId", "userId", "storeId", "catName",
        "subCatId", "subCatName", "entryType", ("quantity", I), ("gsWt", R),
        ("ntWt", R), ("fnWt", R), "purity", "crgType", ("crg", R), "compDes",
        ("compCrg", R), ("cgst", R), ("sgst", R), ("igst", R), "huid", "unit",
        "addDesKey", "addDesValue", ("addDate", TS), ("modifiedDate", TS),
        "sellerFirmId", "purchaseOrderId", "purchaseItemId",
    ),
    primary_key="itemId",
    natural_key=("userId", "storeId", "itemAddName"),
    user_field="userId",
    store_field="storeId",
)

CUSTOMERS = EntityType(
    name="CustomerEntity",
    table="customers",
    label="customers",
    fields=_fields(
        "mobileNo", "name", "address", "gstin_pan", ("addDate", TS),
        ("lastModifiedDate", TS), ("totalItemBought", I), ("totalAmount", R),
        "notes", "userId", "storeId",
    ),
    primary_key="mobileNo",
    natural_key=("userId", "storeId", "mobileNo"),
    user_field="userId",
    store_field="storeId",
)

KHATA_BOOK_PLANS = EntityType(
    name="CustomerKhataBookPlanEntity",
    table="khata_book_plans",
    label="khata_book_plans",
    fields=_fields(
        "planId", "name", ("payMonths", I), ("benefitMonths", I), "description",
        ("benefitPercentage", R), "userId", "storeId", ("createdAt", TS),
        ("updatedAt", TS),
    ),
    primary_key="planId",
    natural_key=("planId",),
    user_field="userId",
    store_field="storeId",
)

KHATA_BOOKS = EntityType(
    name="CustomerKhataBookEntity",
    table="khata_books",
    label="khata_books",
    fields=_fields(
        "khataBookId", "customerMobile", "planName", ("startDate", TS),
        ("endDate", TS), ("monthlyAmount", R), ("totalMonths", I),
        ("totalAmount", R), "status", "notes", "userId", "storeId",
    ),
    primary_key="khataBookId",
    natural_key=("khataBookId",),
    user_field="userId",
    store_field="storeId",
)

TRANSACTIONS = EntityType(
    name="CustomerTransactionEntity",
    table="customer_transactions",
    label="transactions",
    fields=_fields(
        "transactionId", "customerMobile", ("transactionDate", TS), ("amount", R),
        "transactionType", "category", "description", "referenceNumber",
        "paymentMethod", "khataBookId", ("monthNumber", I), "notes", "userId",
        "storeId",
    ),
    primary_key="transactionId",
    natural_key=("transactionId",),
    user_field="userId",
    store_field="storeId",
)

ORDERS = EntityType(
    name="OrderEntity",
    table="orders",
    label="orders",
    fields=_fields(
        "orderId", "customerMobile", "storeId", "userId", ("orderDate", TS),
        ("totalAmount", R), ("totalTax", R), ("totalCharge", R), ("discount", R),
        "note",
    ),
    primary_key="orderId",
    natural_key=("orderId",),
    user_field="userId",
    store_field="storeId",
)

ORDER_ITEMS = EntityType(
    name="OrderItemEntity",
    table="order_items",
    label="order_items",
    fields=_fields(
        "orderItemId", "orderId", ("orderDate", TS), "itemId", "customerMobile",
        "catId", "catName", "itemAddName", "subCatId", "subCatName", "entryType",
        ("quantity", I), ("gsWt", R), ("ntWt", R), ("fnWt", R), ("fnMetalPrice", R),
        "purity", "crgType", ("crg", R), "compDes", ("compCrg", R), ("cgst", R),
        ("sgst", R), ("igst", R), "huid", "addDesKey", "addDesValue", ("price", R),
        ("charge", R), ("tax", R), "sellerFirmId", "purchaseOrderId",
        "purchaseItemId",
    ),
    primary_key="orderItemId",
    natural_key=("orderItemId",),
)

EXCHANGE_ITEMS = EntityType(
    name="ExchangeItemEntity",
    table="exchange_items",
    label="exchange_items",
    fields=_fields(
        "exchangeItemId", "orderId", ("orderDate", TS), "customerMobile",
        "metalType", "purity", ("grossWeight", R), ("fineWeight", R), ("price", R),
        ("isExchangedByMetal", B), ("exchangeValue", R), ("addDate", TS),
    ),
    primary_key="exchangeItemId",
    natural_key=("exchangeItemId",),
)

FIRMS = EntityType(
    name="FirmEntity",
    table="firms",
    label="firms",
    fields=_fields("firmId", "firmName", "firmMobileNumber", "gstNumber", "address"),
    primary_key="firmId",
    natural_key=("firmId",),
)

PURCHASE_ORDERS = EntityType(
    name="PurchaseOrderEntity",
    table="purchase_orders",
    label="purchase_orders",
    fields=_fields(
        "purchaseOrderId", "sellerId", "billNo", "billDate", "entryDate",
        "extraChargeDescription", ("extraCharge", R), ("totalFinalWeight", R),
        ("totalFinalAmount", R), "notes", ("cgstPercent", R), ("sgstPercent", R),
        ("igstPercent", R),
    ),
    primary_key="purchaseOrderId",
    natural_key=("purchaseOrderId",),
)

PURCHASE_ORDER_ITEMS = EntityType(
    name="PurchaseOrderItemEntity",
    table="purchase_order_items",
    label="purchase_order_items",
    fields=_fields(
        "purchaseItemId", "purchaseOrderId", "catId", "catName", "subCatId",
        "subCatName", ("gsWt", R), "purity", ("ntWt", R), ("fnWt", R),
        ("fnRate", R), ("wastagePercent", R),
    ),
    primary_key="purchaseItemId",
    natural_key=("purchaseItemId",),
)

METAL_EXCHANGES = EntityType(
    name="MetalExchangeEntity",
    table="metal_exchanges",
    label="metal_exchanges",
    fields=_fields(
        "exchangeId", "purchaseOrderId", "catId", "catName", "subCatId",
        "subCatName", ("fnWeight", R),
    ),
    primary_key="exchangeId",
    natural_key=("exchangeId",),
)

USER_ADDITIONAL_INFO = EntityType(
    name="UserAdditionalInfoEntity",
    table="user_additional_info",
    label="user_additional_info",
    fields=_fields(
        "userId", "aadhaarNumber", "address", "emergencyContactPerson",
        "emergencyContactNumber", "governmentIdNumber", "governmentIdType",
        "dateOfBirth", "bloodGroup", ("isActive", B), ("createdAt", TS),
        ("updatedAt", TS),
    ),
    primary_key="userId",
    natural_key=("userId",),
    protected_field="userId",
    protected_by="user",
)

# Sheet order of the backup file
CATALOG: tuple[EntityType, ...] = (
    STORES,
    USERS,
    CATEGORIES,
    SUB_CATEGORIES,
    ITEMS,
    CUSTOMERS,
    KHATA_BOOK_PLANS,
    KHATA_BOOKS,
    TRANSACTIONS,
    ORDERS,
    ORDER_ITEMS,
    EXCHANGE_ITEMS,
    FIRMS,
    PURCHASE_ORDERS,
    PURCHASE_ORDER_ITEMS,
    METAL_EXCHANGES,
    USER_ADDITIONAL_INFO,
)

# Parents before children
IMPORT_ORDER: tuple[EntityType, ...] = (
    USERS,
    USER_ADDITIONAL_INFO,
    STORES,
    CATEGORIES,
    SUB_CATEGORIES,
    ITEMS,
    CUSTOMERS,
    KHATA_BOOK_PLANS,
    KHATA_BOOKS,
    TRANSACTIONS,
    ORDERS,
    ORDER_ITEMS,
    EXCHANGE_ITEMS,
    FIRMS,
    PURCHASE_ORDERS,
    PURCHASE_ORDER_ITEMS,
    METAL_EXCHANGES,
)

METADATA_SHEET = "Metadata"
SCHEMA_VERSION = 1

_BY_NAME = {e.name: e for e in CATALOG}
_BY_LABEL = {e.label: e for e in CATALOG}


def get_entity_type(name: str) -> EntityType:
    """Look up an entity type by sheet name or summary label."""
    try:
        return _BY_NAME.get(name) or _BY_LABEL[name]
    except KeyError:
        raise KeyError(f"Unknown entity type: {name}") from None


def required_headers() -> dict[str, list[str]]:
    """Map of sheet name to the header columns a backup file must carry."""
    return {e.name: e.required_headers for e in CATALOG}


_SQL_TYPES = {
    FieldType.TEXT: Text,
    FieldType.INTEGER: BigInteger,
    FieldType.REAL: Float,
    FieldType.BOOLEAN: Boolean,
    FieldType.TIMESTAMP: DateTime,
}


def build_metadata() -> MetaData:
    """Describe every catalog table as SQLAlchemy ``MetaData``."""
    metadata = MetaData()
    for entity in CATALOG:
        Table(
            entity.table,
            metadata,
            *[
                Column(
                    f.name,
                    _SQL_TYPES[f.type](),
                    primary_key=f.name == entity.primary_key,
                    nullable=f.name != entity.primary_key,
                )
                for f in entity.fields
            ],
        )
    return metadata
