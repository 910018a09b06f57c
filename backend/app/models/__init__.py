from .incident import Incident
from .incident_note import IncidentNote
from .incident_history import IncidentHistory
from .purchase_order import PurchaseOrder
from .purchase_order_line import PurchaseOrderLine

__all__ = [
    "Incident",
    "IncidentNote",
    "IncidentHistory",
    "PurchaseOrder",
    "PurchaseOrderLine",
]
