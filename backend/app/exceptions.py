"""Domain errors raised by the services and mapped to HTTP responses in app.main."""


class StorefrontError(Exception):
    """Base class for errors the API reports to the client."""

    status_code = 500

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self) -> dict:
        return {"detail": self.message}


class NotFoundError(StorefrontError):
    status_code = 404


class ConflictError(StorefrontError):
    """The caller's view of the resource state is stale."""

    status_code = 400


class ProductNotFound(NotFoundError):
    def __init__(self, product_id):
        super().__init__(f"Product {product_id} not found")


class ProductUnavailable(ConflictError):
    pass


class GroupNotFound(NotFoundError):
    def __init__(self, group_id):
        super().__init__(f"Group {group_id} not found")


class GroupClosed(ConflictError):
    def __init__(self, group_id):
        super().__init__(f"Group {group_id} is closed and no longer accepts members")


class MemberNotFound(NotFoundError):
    def __init__(self, member_id):
        super().__init__(f"Member {member_id} not found")


class OrderNotFound(NotFoundError):
    def __init__(self, order_id):
        super().__init__(f"Order {order_id} not found")


class InvalidTransition(ConflictError):
    def __init__(self, from_status, to_status):
        super().__init__(f"Transition from '{from_status}' to '{to_status}' is not allowed")
        self.from_status = from_status
        self.to_status = to_status


class InvalidSettings(StorefrontError):
    status_code = 400
