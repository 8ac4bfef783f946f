# pharmacy_erp/constants.py
APP_NAME = "Pharmacy ERP"

DATA_DIR = "data"
DB_FILE_NAME = "pharmacy.db"

TABLE_SCHEMA_VERSION = "schema_version"
SCHEMA_VERSION = "4"

# posted numbers: prefix + zero padded sequence
PURCHASE_NUMBER_PREFIX = "PRINV-"
PURCHASE_NUMBER_WIDTH = 4
SALE_NUMBER_PREFIX = "SI-"
SALE_NUMBER_WIDTH = 6
ADJUSTMENT_NUMBER_PREFIX = "STADJ-"
ADJUSTMENT_NUMBER_WIDTH = 5

MONEY_PLACES = 2
INVOICE_AMOUNT_TOLERANCE = "5"
DEFAULT_SALE_QUANTITY = "1"

AVG_PRICE_WEIGHTED = "weighted"
AVG_PRICE_LAST_COST = "last_cost"
AVG_PRICE_POLICIES = (AVG_PRICE_WEIGHTED, AVG_PRICE_LAST_COST)

ENV_PREFIX = "PHARMACY_ERP_"
