"""
Orders application.

Owns the order aggregate (Order, OrderItem, Shipping) and the status
engine that moves orders through their lifecycle:

    pending → complete → shipped → delivered
    pending → expired / canceled
    complete → refunding → refunded

Services (import from orders.services):
    - OrderService: DTO loading, status persistence, stock reversal
    - OrderStatusService: Guarded transitions and derived operations
    - ShippingService: Shipping record creation
"""
