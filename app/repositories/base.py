from __future__ import annotations

import logging
from typing import Any, Generic, Sequence, TypeVar, Union

from sqlalchemy import delete as sa_delete, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.inspection import inspect as sa_inspect
from sqlalchemy.orm import InstrumentedAttribute, Session, make_transient_to_detached
from sqlalchemy.orm.attributes import flag_modified, set_committed_value

logger = logging.getLogger(__name__)

T = TypeVar("T")  # SQLAlchemy model class (Declarative)

# "title" / Todo.title のどちらでもプロパティを指定できる
PropertyRef = Union[str, InstrumentedAttribute]


class BaseRepository(Generic[T]):
    """
    SQLAlchemy 2.x 用の共通リポジトリ（モデル専用）。
    - セッションは各メソッドに渡す（保持しない）。
    - 変更追跡（attach / save_changes）は同期 Session・AsyncSession の両方に対応。
    """

    def __init__(self, model: type[T]) -> None:
        self.model = model

    # ------------------------ Read ------------------------

    async def get(self, session: AsyncSession, pk: Any) -> T | None:
        """主キー1件取得"""
        return await session.get(self.model, pk)

    async def list(
        self,
        session: AsyncSession,
        *,
        where: dict[str, Any] | None = None,
        order_by: Sequence[InstrumentedAttribute] | None = None,
        limit: int | None = 100,
        offset: int | None = 0,
    ) -> list[T]:
        """一覧（簡易版）"""
        stmt = select(self.model)
        if where:
            stmt = stmt.filter_by(**where)
        if order_by:
            stmt = stmt.order_by(*order_by)
        if limit is not None:
            stmt = stmt.limit(limit)
        if offset:
            stmt = stmt.offset(offset)
        res = await session.execute(stmt)
        return list(res.scalars().all())

    # ------------------------ Write ------------------------

    async def create(self, session: AsyncSession, obj: T) -> T:
        """
        新規作成。transient（未管理）のモデルのみ受け入れる。
        add → flush（commit は save_changes_async で行う）
        """
        state = sa_inspect(obj)
        if not state.transient:
            raise ValueError("create(): expected a transient (new) SQLAlchemy model instance")
        session.add(obj)
        await session.flush()
        return obj

    async def delete(self, session: AsyncSession, pk: Any) -> bool:
        """主キー削除（削除できたかを返す）"""
        pk_cols = sa_inspect(self.model).primary_key
        if len(pk_cols) != 1:
            raise ValueError("delete(): composite primary key is not supported")
        pk_col = pk_cols[0]
        stmt = sa_delete(self.model).where(pk_col == pk)
        res = await session.execute(stmt)
        return (res.rowcount or 0) > 0

    # ------------------------ Change tracking ------------------------

    def attach(self, session: Session | AsyncSession, entity: T) -> T:
        """
        エンティティをセッションの追跡対象にする（変更なし状態で）。
        - transient かつ PK がすべてセット済み: detached に変換して add（SELECT しない）
        - transient で PK 未設定: pending として add（flush 時に INSERT）
        - detached: 属性の変更履歴を破棄して add
        - persistent: そのまま
        別セッション管理下のインスタンスや、同一 identity の重複は ORM の例外がそのまま上がる。
        """
        state = sa_inspect(entity)
        if state.transient and self._has_identity(entity):
            make_transient_to_detached(entity)
            logger.debug("attach(): %r transient -> detached (key=%r)", entity, state.key)
        elif state.detached:
            self._reset_history(entity)
        elif state.persistent and state.session is session_of(session):
            return entity
        session.add(entity)
        logger.debug("attach(): %r tracked (pending=%s)", entity, state.pending)
        return entity

    def property_key(self, prop: PropertyRef, *, caller: str = "property_key") -> str:
        """プロパティ参照（名前 or InstrumentedAttribute）を列属性のキーに解決する。"""
        mapper = sa_inspect(self.model)
        if isinstance(prop, InstrumentedAttribute):
            if not issubclass(self.model, prop.class_):
                raise ValueError(
                    f"{caller}(): {prop!r} does not belong to {self.model.__name__}"
                )
            key = prop.key
        elif isinstance(prop, str):
            key = prop
        else:
            raise ValueError(f"{caller}(): unsupported property reference {prop!r}")

        if key not in mapper.column_attrs:
            raise ValueError(
                f"{caller}(): '{key}' is not a mapped column of {self.model.__name__}"
            )
        if key in self._pk_keys():
            raise ValueError(f"{caller}(): primary key '{key}' cannot be updated")
        return key

    def save_changes(
        self,
        session: Session,
        *,
        accept_all_changes_on_success: bool = True,
    ) -> None:
        """
        変更を保存（commit）。
        - accept_all_changes_on_success=False: commit 後も変更済みの列を
          変更扱いのまま残す（次回の save_changes で再度書き込まれる）
        """
        changes = None if accept_all_changes_on_success else _modified_keys(session)
        session.commit()
        if changes:
            _restore_modified(changes)

    async def save_changes_async(
        self,
        session: AsyncSession,
        *,
        accept_all_changes_on_success: bool = True,
    ) -> None:
        """変更を保存（非同期版）。"""
        changes = None if accept_all_changes_on_success else _modified_keys(session)
        await session.commit()
        if changes:
            _restore_modified(changes)

    # ------------------------ Internal ------------------------

    def _pk_keys(self) -> list[str]:
        mapper = sa_inspect(self.model)
        return [mapper.get_property_by_column(c).key for c in mapper.primary_key]

    def _column_keys(self, entity: T) -> list[str]:
        """ロード済みの非PK列属性キー"""
        loaded = sa_inspect(entity).dict
        pk_keys = set(self._pk_keys())
        return [
            attr.key
            for attr in sa_inspect(self.model).column_attrs
            if attr.key in loaded and attr.key not in pk_keys
        ]

    def _has_identity(self, entity: T) -> bool:
        return all(getattr(entity, key, None) is not None for key in self._pk_keys())

    def _reset_history(self, entity: T, keys: Sequence[str] | None = None) -> None:
        """変更履歴を破棄し、現在値を「コミット済み」とみなす"""
        loaded = sa_inspect(entity).dict
        for key in self._column_keys(entity) if keys is None else keys:
            if key in loaded:
                set_committed_value(entity, key, loaded[key])


def session_of(session: Session | AsyncSession) -> Session:
    """AsyncSession の場合は内部の同期 Session を返す"""
    if isinstance(session, AsyncSession):
        return session.sync_session
    return session


def _modified_keys(session: Session | AsyncSession) -> list[tuple[Any, list[str]]]:
    """dirty なインスタンスと、その変更済み列キー"""
    changes = []
    for obj in session_of(session).dirty:
        state = sa_inspect(obj)
        keys = [
            attr.key
            for attr in state.mapper.column_attrs
            if state.attrs[attr.key].history.has_changes()
        ]
        if keys:
            changes.append((obj, keys))
    return changes


def _restore_modified(changes: list[tuple[Any, list[str]]]) -> None:
    for obj, keys in changes:
        loaded = sa_inspect(obj).dict
        # expire_on_commit=True のセッションでは値が失われているので対象外
        kept = [key for key in keys if key in loaded]
        for key in kept:
            flag_modified(obj, key)
        logger.debug("save_changes(): %r still modified=%s", obj, kept)
