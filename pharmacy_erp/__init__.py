"""
Invoice and stock-adjustment reconciliation engine for a pharmacy/retail ERP.

The pure engine lives under ``pharmacy_erp.modules``; ``pharmacy_erp.database``
is the sqlite persistence boundary used by the Qt controllers.
"""

__version__ = "0.4.0"
