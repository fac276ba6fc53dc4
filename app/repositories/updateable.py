from __future__ import annotations

import logging
from typing import Iterable, TypeVar, Union

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.inspection import inspect as sa_inspect
from sqlalchemy.orm import InstrumentedAttribute, Session
from sqlalchemy.orm.attributes import flag_modified

from app.repositories.base import BaseRepository, PropertyRef

logger = logging.getLogger(__name__)

T = TypeVar("T")

Properties = Union[PropertyRef, Iterable[PropertyRef]]


class UpdateableRepository(BaseRepository[T]):
    """
    更新系の操作を追加したリポジトリ。
    - update: ロード済みの全列を変更扱いにする
    - update_include: 指定した列のみ変更扱いにする
    - update_exclude: 全列を変更扱いにした上で、指定した列を除外する
    - *_save_changes: 直後に save_changes（commit）まで行う
    - *_async: AsyncSession 用。保存しない版は I/O を伴わない
    """

    # ------------------------ Update ------------------------

    def update(self, session: Session | AsyncSession, entity: T) -> T:
        """エンティティを更新対象にする（全列）"""
        self.attach(session, entity)
        if sa_inspect(entity).pending:
            # PK 未設定 → INSERT
            return entity
        keys = self._column_keys(entity)
        for key in keys:
            flag_modified(entity, key)
        logger.debug("update(): %r modified=%s", entity, keys)
        return entity

    def update_range(self, session: Session | AsyncSession, entities: Iterable[T]) -> list[T]:
        """複数エンティティを更新対象にする"""
        return [self.update(session, e) for e in entities]

    async def update_async(self, session: AsyncSession, entity: T) -> T:
        return self.update(session, entity)

    async def update_range_async(self, session: AsyncSession, entities: Iterable[T]) -> list[T]:
        return self.update_range(session, entities)

    def update_save_changes(
        self,
        session: Session,
        entity: T,
        *,
        accept_all_changes_on_success: bool = True,
    ) -> T:
        """更新して即保存"""
        self.update(session, entity)
        self.save_changes(session, accept_all_changes_on_success=accept_all_changes_on_success)
        return entity

    def update_range_save_changes(
        self,
        session: Session,
        entities: Iterable[T],
        *,
        accept_all_changes_on_success: bool = True,
    ) -> list[T]:
        items = self.update_range(session, entities)
        self.save_changes(session, accept_all_changes_on_success=accept_all_changes_on_success)
        return items

    async def update_save_changes_async(
        self,
        session: AsyncSession,
        entity: T,
        *,
        accept_all_changes_on_success: bool = True,
    ) -> T:
        await self.update_async(session, entity)
        await self.save_changes_async(
            session, accept_all_changes_on_success=accept_all_changes_on_success
        )
        return entity

    async def update_range_save_changes_async(
        self,
        session: AsyncSession,
        entities: Iterable[T],
        *,
        accept_all_changes_on_success: bool = True,
    ) -> list[T]:
        items = await self.update_range_async(session, entities)
        await self.save_changes_async(
            session, accept_all_changes_on_success=accept_all_changes_on_success
        )
        return items

    # ------------------------ Include ------------------------

    def update_include(self, session: Session | AsyncSession, entity: T, properties: Properties) -> T:
        """
        指定した列のみ更新する。
        - properties: 列名 / InstrumentedAttribute（単体または Iterable）
        - 指定列が未ロードの場合は ORM の InvalidRequestError が上がる
        """
        keys = self._resolve(properties, caller="update_include")
        self.attach(session, entity)
        if sa_inspect(entity).pending:
            return entity
        for key in keys:
            flag_modified(entity, key)
        logger.debug("update_include(): %r modified=%s", entity, keys)
        return entity

    async def update_include_async(self, session: AsyncSession, entity: T, properties: Properties) -> T:
        return self.update_include(session, entity, properties)

    def update_include_save_changes(
        self,
        session: Session,
        entity: T,
        properties: Properties,
        *,
        accept_all_changes_on_success: bool = True,
    ) -> T:
        self.update_include(session, entity, properties)
        self.save_changes(session, accept_all_changes_on_success=accept_all_changes_on_success)
        return entity

    async def update_include_save_changes_async(
        self,
        session: AsyncSession,
        entity: T,
        properties: Properties,
        *,
        accept_all_changes_on_success: bool = True,
    ) -> T:
        await self.update_include_async(session, entity, properties)
        await self.save_changes_async(
            session, accept_all_changes_on_success=accept_all_changes_on_success
        )
        return entity

    # ------------------------ Exclude ------------------------

    def update_exclude(self, session: Session | AsyncSession, entity: T, properties: Properties) -> T:
        """
        指定した列以外を更新する。
        除外列は現在値のまま「変更なし」に戻す（DB には書き込まれない）。
        """
        keys = self._resolve(properties, caller="update_exclude")
        self.update(session, entity)
        if sa_inspect(entity).pending:
            return entity
        self._reset_history(entity, keys)
        logger.debug("update_exclude(): %r excluded=%s", entity, keys)
        return entity

    async def update_exclude_async(self, session: AsyncSession, entity: T, properties: Properties) -> T:
        return self.update_exclude(session, entity, properties)

    def update_exclude_save_changes(
        self,
        session: Session,
        entity: T,
        properties: Properties,
        *,
        accept_all_changes_on_success: bool = True,
    ) -> T:
        self.update_exclude(session, entity, properties)
        self.save_changes(session, accept_all_changes_on_success=accept_all_changes_on_success)
        return entity

    async def update_exclude_save_changes_async(
        self,
        session: AsyncSession,
        entity: T,
        properties: Properties,
        *,
        accept_all_changes_on_success: bool = True,
    ) -> T:
        await self.update_exclude_async(session, entity, properties)
        await self.save_changes_async(
            session, accept_all_changes_on_success=accept_all_changes_on_success
        )
        return entity

    # ------------------------ Internal ------------------------

    def _resolve(self, properties: Properties, *, caller: str) -> list[str]:
        if isinstance(properties, (str, InstrumentedAttribute)):
            properties = [properties]
        try:
            properties = list(properties)
        except TypeError:
            raise ValueError(
                f"{caller}(): expected a property or an iterable of properties, got {properties!r}"
            ) from None
        # 重複除去（順序維持）
        keys: list[str] = []
        for prop in properties:
            key = self.property_key(prop, caller=caller)
            if key not in keys:
                keys.append(key)
        return keys
