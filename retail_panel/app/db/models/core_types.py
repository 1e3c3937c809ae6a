import enum


class ProductStatus(str, enum.Enum):
    active = "active"
    inactive = "inactive"


# Valeurs par défaut des ventes reçues des boutiques
ONLINE_CHANNEL = "Online Store"
ONLINE_PAYMENT_METHOD = "Online"
ONLINE_CUSTOMER_NAME = "Online Customer"
