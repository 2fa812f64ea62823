from textual.message import Message


class QuitRequestedMessage(Message):
    """
    broadcasted when the app is about to quit
    """

    bubble = True


class UserLogoutMessage(Message):
    """
    broadcasted when the employee or admin logs out
    """

    bubble = True


class UserLoginMessage(Message):
    """
    Fired when someone logged in, so the screen can refresh
    """

    bubble = True


class CartChangedMessage(Message):
    """
    Fired whenever items of a cart changed (added, updated, removed), or a new
    cart was opened. Cart list, catalog and cart detail screens reload on it.

    If posted from outside a screen, make sure to post at App level
    """

    bubble = True

    def __init__(self, cart_id: int | None = None) -> None:
        super().__init__()
        self.cart_id = cart_id


class CartClosedMessage(Message):
    """
    Fired when a cart is confirmed or rejected.
    Listened to by cart list and transaction history
    """

    bubble = True

    def __init__(self, cart_id: int, status: str) -> None:
        super().__init__()
        self.cart_id = cart_id
        self.status = status


class ModeSwitchedMessage(Message):
    """
    fired whenever switch_mode is called
    must be fired from app level
    """

    bubble = True

    def __init__(self, old_mode: str, new_mode: str) -> None:
        super().__init__()
        self.old_mode = old_mode
        self.new_mode = new_mode
