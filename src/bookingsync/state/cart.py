"""Local cart reducer.

Pure, synchronous transitions over :class:`CartState`. The cart is owned
entirely locally and never touches the gateway.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from typing import Any

from bookingsync.models.cart import CartItem, CartState

_logger = logging.getLogger(__name__)

EMPTY_CART = CartState()


def _coerce_item(item: CartItem | Mapping[str, Any]) -> CartItem:
    if isinstance(item, CartItem):
        return item
    return CartItem.model_validate(dict(item))


def add_item(state: CartState, item: CartItem | Mapping[str, Any]) -> CartState:
    """Append *item* with quantity 1, or bump the quantity of an existing entry."""
    incoming = _coerce_item(item)
    if any(existing.id == incoming.id for existing in state.items):
        items = tuple(
            existing.model_copy(update={"quantity": existing.quantity + 1}) if existing.id == incoming.id else existing
            for existing in state.items
        )
    else:
        items = (*state.items, incoming.model_copy(update={"quantity": 1}))
    return CartState(items=items)


def remove_item(state: CartState, item_id: str) -> CartState:
    """Drop every entry with *item_id*. Absent ids are a no-op."""
    return CartState(items=tuple(existing for existing in state.items if existing.id != item_id))


def set_quantity(state: CartState, item_id: str, quantity: int) -> CartState:
    if quantity <= 0:
        return remove_item(state, item_id)
    return CartState(
        items=tuple(
            existing.model_copy(update={"quantity": quantity}) if existing.id == item_id else existing
            for existing in state.items
        )
    )


def clear_cart(_state: CartState | None = None) -> CartState:
    return EMPTY_CART


class Cart:
    """Synchronous container around the cart reducer.

    Usage::

        cart = Cart()
        cart.add({"id": "s1", "name": "Cleaning", "price": 10})
        cart.state.total
    """

    def __init__(self, state: CartState = EMPTY_CART) -> None:
        self._state = state
        self._listeners: list[Callable[[CartState], None]] = []

    @property
    def state(self) -> CartState:
        return self._state

    @property
    def items(self) -> tuple[CartItem, ...]:
        return self._state.items

    @property
    def total(self) -> float:
        return self._state.total

    @property
    def item_count(self) -> int:
        return self._state.item_count

    def add_listener(self, listener: Callable[[CartState], None]) -> Callable[[], None]:
        self._listeners.append(listener)

        def _remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _remove

    def add(self, item: CartItem | Mapping[str, Any]) -> CartState:
        return self._set(add_item(self._state, item))

    def remove(self, item_id: str) -> CartState:
        return self._set(remove_item(self._state, item_id))

    def set_quantity(self, item_id: str, quantity: int) -> CartState:
        return self._set(set_quantity(self._state, item_id, quantity))

    def clear(self) -> CartState:
        return self._set(clear_cart(self._state))

    def _set(self, state: CartState) -> CartState:
        self._state = state
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception:
                _logger.debug("cart listener failed", exc_info=True)
        return state
