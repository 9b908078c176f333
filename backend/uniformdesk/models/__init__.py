from .tenancy import Company, CompanyAdmin
from .employees import Employee, ELIGIBILITY_CATEGORIES
from .catalog import Product, Vendor, ProductCompany, ProductVendor, VendorCompany, PRODUCT_CATEGORIES
from .orders import Order, OrderItem, ORDER_STATUSES
from .security import SecurityEvent

__all__ = [
    'Company', 'CompanyAdmin',
    'Employee', 'ELIGIBILITY_CATEGORIES',
    'Product', 'Vendor', 'ProductCompany', 'ProductVendor', 'VendorCompany', 'PRODUCT_CATEGORIES',
    'Order', 'OrderItem', 'ORDER_STATUSES',
    'SecurityEvent',
]
