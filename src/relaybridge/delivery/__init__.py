from .adapters import (
    DeliveryClient,
    MockDeliveryClient,
    PubSubDeliveryClient,
    RemoteDeliveryClient,
    create_delivery_client,
)

__all__ = ["DeliveryClient", "MockDeliveryClient", "PubSubDeliveryClient", "RemoteDeliveryClient", "create_delivery_client"]
