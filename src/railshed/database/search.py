"""Query construction for collection and catalog searches.

Every indexed equality predicate of a filter is a candidate driving index.
Before running a search the engine counts, per candidate, how many rows the
index yields and drives the query from the smallest set: the chosen
predicate becomes an ``id IN (...)`` subquery over an alias of the table,
which SQLite answers from that index alone. The remaining predicates are
applied to the driven rows.
"""

from dataclasses import dataclass
from typing import Any, Callable, Optional

from sqlalchemy import Select, and_, func, literal_column, not_, or_, select
from sqlalchemy.orm import Session, aliased
from sqlalchemy.sql.elements import ColumnElement

from railshed.domain.enums import DCC_CAPABLE_CONTROLS
from railshed.domain.filters import CollectionFilter
from railshed.database.models import (
    CollectionItem,
    Manufacturer,
    OwnedRollingStock,
    RailwayModel,
    RollingStock,
)

# Indexes created by the schema migrations, by filter option.
COLLECTION_ITEM_INDEXES = {
    "brand": "idx_collection_items_manufacturer",
    "scale": "idx_collection_items_scale",
    "epoch": "idx_collection_items_epoch",
    "category": "idx_collection_items_category",
}
RAILWAY_MODEL_INDEXES = {
    "brand": "idx_railway_models_manufacturer_id",
    "scale": "idx_railway_models_scale",
    "epoch": "idx_railway_models_epoch",
    "category": "idx_railway_models_category",
    "road_number": "idx_rolling_stocks_road_number",
}


@dataclass(frozen=True)
class IndexCandidate:
    """An indexed predicate that can drive a search."""

    option: str
    index_name: str
    predicate: Callable[[Any], ColumnElement]


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _prefix(column, value: str) -> ColumnElement:
    return column.like(f"{_escape_like(value)}%", escape="\\")


def _contains(column, value: str) -> ColumnElement:
    return column.ilike(f"%{_escape_like(value)}%", escape="\\")


def sort_key(entity) -> ColumnElement:
    """Deterministic ordering expression, matching the ``*_sort`` indexes."""
    return func.coalesce(entity.description, literal_column("''"))


def _rolling_stock_conditions(flt: CollectionFilter, dcc: Optional[bool]) -> list[ColumnElement]:
    conditions = []
    if flt.livery is not None:
        conditions.append(RollingStock.livery == flt.livery)
    if flt.depot is not None:
        conditions.append(RollingStock.depot == flt.depot)
    if flt.road_number is not None:
        conditions.append(_prefix(RollingStock.road_number, flt.road_number))
    if dcc:
        conditions.append(RollingStock.control.in_(DCC_CAPABLE_CONTROLS))
    return conditions


def _item_has_rolling_stock(item, conditions: list[ColumnElement]) -> ColumnElement:
    """True when one of the item's catalog rolling stocks matches all conditions.

    An item's catalog rolling stocks are those of its linked railway model plus
    those its owned rolling stocks point at.
    """
    via_model = (
        select(RollingStock.id)
        .where(RollingStock.railway_model_id == item.railway_model_id, *conditions)
        .exists()
    )
    via_owned = (
        select(OwnedRollingStock.id)
        .join(RollingStock, RollingStock.id == OwnedRollingStock.catalog_rolling_stock_id)
        .where(OwnedRollingStock.item_id == item.id, *conditions)
        .exists()
    )
    return or_(via_model, via_owned)


def _model_has_rolling_stock(model, conditions: list[ColumnElement]) -> ColumnElement:
    return (
        select(RollingStock.id)
        .where(RollingStock.railway_model_id == model.id, *conditions)
        .exists()
    )


def collection_item_candidates(flt: CollectionFilter) -> list[IndexCandidate]:
    candidates = []
    if flt.brand is not None:
        candidates.append(
            IndexCandidate("brand", COLLECTION_ITEM_INDEXES["brand"], lambda e: e.manufacturer == flt.brand)
        )
    if flt.scale is not None:
        candidates.append(
            IndexCandidate("scale", COLLECTION_ITEM_INDEXES["scale"], lambda e: e.scale == flt.scale.value)
        )
    if flt.epoch is not None:
        candidates.append(
            IndexCandidate("epoch", COLLECTION_ITEM_INDEXES["epoch"], lambda e: e.epoch == flt.epoch)
        )
    if flt.category is not None:
        candidates.append(
            IndexCandidate(
                "category", COLLECTION_ITEM_INDEXES["category"], lambda e: e.category == flt.category.value
            )
        )
    return candidates


def railway_model_candidates(flt: CollectionFilter) -> list[IndexCandidate]:
    candidates = []
    if flt.brand is not None:
        brand_ids = select(Manufacturer.id).where(Manufacturer.name == flt.brand)
        candidates.append(
            IndexCandidate(
                "brand", RAILWAY_MODEL_INDEXES["brand"], lambda e: e.manufacturer_id.in_(brand_ids)
            )
        )
    if flt.scale is not None:
        candidates.append(
            IndexCandidate("scale", RAILWAY_MODEL_INDEXES["scale"], lambda e: e.scale == flt.scale.value)
        )
    if flt.epoch is not None:
        candidates.append(
            IndexCandidate("epoch", RAILWAY_MODEL_INDEXES["epoch"], lambda e: e.epoch == flt.epoch)
        )
    if flt.category is not None:
        candidates.append(
            IndexCandidate(
                "category", RAILWAY_MODEL_INDEXES["category"], lambda e: e.category == flt.category.value
            )
        )
    if flt.road_number is not None:
        road_number_models = select(RollingStock.railway_model_id).where(
            _prefix(RollingStock.road_number, flt.road_number)
        )
        candidates.append(
            IndexCandidate(
                "road_number",
                RAILWAY_MODEL_INDEXES["road_number"],
                lambda e: e.id.in_(road_number_models),
            )
        )
    return candidates


def choose_index(session: Session, model, candidates: list[IndexCandidate]) -> Optional[IndexCandidate]:
    """Pick the candidate whose index yields the fewest rows."""
    best: Optional[IndexCandidate] = None
    best_count: Optional[int] = None
    for candidate in candidates:
        count = session.execute(
            select(func.count()).select_from(model).where(candidate.predicate(model))
        ).scalar_one()
        if best_count is None or count < best_count:
            best, best_count = candidate, count
    return best


def _page(stmt: Select, entity, limit: int, after: Optional[tuple[str, str]]) -> Select:
    key = sort_key(entity)
    if after is not None:
        description, entity_id = after
        stmt = stmt.where(or_(key > description, and_(key == description, entity.id > entity_id)))
    # One extra row tells whether another page follows
    return stmt.order_by(key, entity.id).limit(limit + 1)


def _driven_by(stmt: Select, model, chosen: Optional[IndexCandidate]) -> Select:
    if chosen is None:
        return stmt
    driver = aliased(model)
    return stmt.where(model.id.in_(select(driver.id).where(chosen.predicate(driver))))


def collection_item_query(
    session: Session,
    flt: CollectionFilter,
    limit: int,
    after: Optional[tuple[str, str]] = None,
) -> Select:
    """Build the query for one page of matching collection items."""
    candidates = collection_item_candidates(flt)
    chosen = choose_index(session, CollectionItem, candidates)
    stmt = _driven_by(select(CollectionItem), CollectionItem, chosen)

    for candidate in candidates:
        if candidate is not chosen:
            stmt = stmt.where(candidate.predicate(CollectionItem))

    stock_conditions = _rolling_stock_conditions(flt, flt.dcc_capable)
    if stock_conditions:
        stmt = stmt.where(_item_has_rolling_stock(CollectionItem, stock_conditions))
    if flt.dcc_capable is False:
        stmt = stmt.where(
            not_(_item_has_rolling_stock(CollectionItem, [RollingStock.control.in_(DCC_CAPABLE_CONTROLS)]))
        )
    if flt.text is not None:
        stmt = stmt.where(
            or_(_contains(CollectionItem.description, flt.text), _contains(CollectionItem.product_code, flt.text))
        )
    return _page(stmt, CollectionItem, limit, after)


def railway_model_query(
    session: Session,
    flt: CollectionFilter,
    limit: int,
    after: Optional[tuple[str, str]] = None,
) -> Select:
    """Build the query for one page of matching railway models."""
    candidates = railway_model_candidates(flt)
    chosen = choose_index(session, RailwayModel, candidates)
    stmt = _driven_by(select(RailwayModel), RailwayModel, chosen)

    for candidate in candidates:
        if candidate is not chosen and candidate.option != "road_number":
            stmt = stmt.where(candidate.predicate(RailwayModel))

    stock_conditions = _rolling_stock_conditions(flt, flt.dcc_capable)
    if stock_conditions:
        stmt = stmt.where(_model_has_rolling_stock(RailwayModel, stock_conditions))
    if flt.dcc_capable is False:
        stmt = stmt.where(
            not_(_model_has_rolling_stock(RailwayModel, [RollingStock.control.in_(DCC_CAPABLE_CONTROLS)]))
        )
    if flt.text is not None:
        stmt = stmt.where(
            or_(_contains(RailwayModel.description, flt.text), _contains(RailwayModel.product_code, flt.text))
        )
    return _page(stmt, RailwayModel, limit, after)
