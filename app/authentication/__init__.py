"""
Authentication application.

Registered bookstore customers. Guest checkouts do not create users;
their identity is stored on the order.

Usage:
    from authentication.models import User
    from authentication.services import AuthService
"""
