"""Tests for the replace-set child collection operation

WHAT: existing rows are diffed against a desired keyed set
WHY: Child collections must equal the remote payload exactly after a re-sync
"""

from sqlmodel import select

from woomirror.models.mirror_models import Order, OrderItem
from woomirror.sync.replace_set import replace_set, unkeyed

from factories import days_ago


def _order(session, store):
    order = Order(store_id=store.id, woo_id="1", created_at=days_ago(1), total=10)
    session.add(order)
    session.commit()
    session.refresh(order)
    return order


def _replace(session, order, desired):
    existing = session.exec(select(OrderItem).where(OrderItem.order_id == order.id)).all()
    stats = replace_set(
        session,
        existing,
        desired,
        row_key=lambda item: item.woo_line_id,
        build=lambda values: OrderItem(order_id=order.id, **values),
    )
    session.commit()
    return stats


def _items(session, order):
    return session.exec(
        select(OrderItem).where(OrderItem.order_id == order.id).order_by(OrderItem.woo_line_id)
    ).all()


class TestReplaceSet:
    def test_insert_update_delete(self, session, store):
        order = _order(session, store)
        _replace(
            session,
            order,
            {
                "a": {"woo_line_id": "a", "name": "A", "quantity": 1},
                "b": {"woo_line_id": "b", "name": "B", "quantity": 1},
            },
        )
        first_a = _items(session, order)[0].id

        stats = _replace(
            session,
            order,
            {
                "a": {"woo_line_id": "a", "name": "A", "quantity": 3},
                "c": {"woo_line_id": "c", "name": "C", "quantity": 1},
            },
        )

        items = _items(session, order)
        assert [(i.woo_line_id, i.quantity) for i in items] == [("a", 3), ("c", 1)]
        assert items[0].id == first_a  # kept rows are updated in place
        assert (stats.inserted, stats.updated, stats.deleted) == (1, 1, 1)

    def test_empty_desired_set_deletes_everything(self, session, store):
        order = _order(session, store)
        _replace(session, order, {"a": {"woo_line_id": "a", "name": "A"}})

        stats = _replace(session, order, {})

        assert _items(session, order) == []
        assert stats.deleted == 1

    def test_unkeyed_children_are_recreated(self, session, store):
        order = _order(session, store)
        desired = {unkeyed(0): {"woo_line_id": None, "name": "Gift wrap", "quantity": 1}}
        _replace(session, order, desired)

        stats = _replace(session, order, desired)

        assert len(_items(session, order)) == 1
        assert (stats.inserted, stats.deleted) == (1, 1)
