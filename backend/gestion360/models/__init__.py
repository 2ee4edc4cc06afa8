from .inventory import Product
from .customers import Customer
from .transactions import LedgerTransaction, TransactionType
from .auth import User
from .ledger import LedgerRevision

COLLECTION_USERS = User.COLLECTION
COLLECTION_PRODUCTS = Product.COLLECTION
COLLECTION_CUSTOMERS = Customer.COLLECTION
COLLECTION_TRANSACTIONS = LedgerTransaction.COLLECTION

# Wire collection name -> mapped model
COLLECTION_MODELS = {
    model.COLLECTION: model
    for model in (User, Product, Customer, LedgerTransaction)
}

__all__ = [
    'Product', 'Customer', 'LedgerTransaction', 'TransactionType', 'User', 'LedgerRevision',
    'COLLECTION_USERS', 'COLLECTION_PRODUCTS', 'COLLECTION_CUSTOMERS', 'COLLECTION_TRANSACTIONS',
    'COLLECTION_MODELS',
]
