"""PostgreSQL implementation of CatalogRepo."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.tables import CourseRow, LessonRow, ModuleRow
from app.models.course import Course, Lesson, Module
from app.repos.catalog_repo import order_lessons


class PgCatalogRepo:
    """Satisfies the CatalogRepo Protocol using PostgreSQL via SQLAlchemy."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    # --- courses ---

    async def get_course(self, course_id: UUID) -> Course | None:
        row = await self._session.get(CourseRow, course_id)
        return _row_to_course(row) if row is not None else None

    async def get_course_by_slug(self, slug: str) -> Course | None:
        stmt = select(CourseRow).where(CourseRow.slug == slug)
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        return _row_to_course(row) if row is not None else None

    async def list_courses(self) -> list[Course]:
        rows = (await self._session.execute(select(CourseRow))).scalars().all()
        return [_row_to_course(r) for r in rows]

    async def add_course(self, course: Course) -> None:
        self._session.add(
            CourseRow(
                id=course.id,
                slug=course.slug,
                title=course.title,
                instructor_id=course.instructor_id,
                instructor_name=course.instructor_name,
                is_published=course.is_published,
                duration=course.duration,
            )
        )
        await self._session.flush()

    async def set_course_duration(self, course_id: UUID, duration: int) -> None:
        stmt = update(CourseRow).where(CourseRow.id == course_id).values(duration=duration)
        await self._session.execute(stmt)

    # --- modules ---

    async def get_module(self, module_id: UUID) -> Module | None:
        row = await self._session.get(ModuleRow, module_id)
        return _row_to_module(row) if row is not None else None

    async def list_modules(self, course_id: UUID) -> list[Module]:
        stmt = (
            select(ModuleRow)
            .where(ModuleRow.course_id == course_id)
            .order_by(ModuleRow.order)
        )
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_module(r) for r in rows]

    async def add_module(self, module: Module) -> None:
        self._session.add(
            ModuleRow(
                id=module.id,
                course_id=module.course_id,
                order=module.order,
                title=module.title,
            )
        )
        await self._session.flush()

    async def delete_module(self, module_id: UUID) -> int:
        result = await self._session.execute(
            delete(LessonRow).where(LessonRow.module_id == module_id)
        )
        await self._session.execute(delete(ModuleRow).where(ModuleRow.id == module_id))
        return result.rowcount or 0

    # --- lessons ---

    async def get_lesson(self, lesson_id: UUID) -> Lesson | None:
        row = await self._session.get(LessonRow, lesson_id)
        return _row_to_lesson(row) if row is not None else None

    async def list_lessons(
        self, module_ids: list[UUID], *, published_only: bool = False
    ) -> list[Lesson]:
        if not module_ids:
            return []
        stmt = select(LessonRow).where(LessonRow.module_id.in_(module_ids))
        if published_only:
            stmt = stmt.where(LessonRow.is_published.is_(True))
        rows = (await self._session.execute(stmt)).scalars().all()
        return order_lessons([_row_to_lesson(r) for r in rows], module_ids)

    async def add_lesson(self, lesson: Lesson) -> None:
        self._session.add(
            LessonRow(
                id=lesson.id,
                module_id=lesson.module_id,
                title=lesson.title,
                order=lesson.order,
                is_published=lesson.is_published,
                is_free=lesson.is_free,
                video_duration=lesson.video_duration,
            )
        )
        await self._session.flush()

    async def update_lesson(self, lesson: Lesson) -> None:
        stmt = (
            update(LessonRow)
            .where(LessonRow.id == lesson.id)
            .values(
                title=lesson.title,
                order=lesson.order,
                is_published=lesson.is_published,
                is_free=lesson.is_free,
                video_duration=lesson.video_duration,
            )
        )
        result = await self._session.execute(stmt)
        if result.rowcount == 0:
            raise KeyError("lesson not found")

    async def delete_lesson(self, lesson_id: UUID) -> bool:
        result = await self._session.execute(
            delete(LessonRow).where(LessonRow.id == lesson_id)
        )
        return bool(result.rowcount)


def _row_to_course(row: CourseRow) -> Course:
    return Course(
        id=row.id,
        slug=row.slug,
        title=row.title,
        instructor_id=row.instructor_id,
        instructor_name=row.instructor_name or "",
        is_published=row.is_published,
        duration=row.duration,
    )


def _row_to_module(row: ModuleRow) -> Module:
    return Module(id=row.id, course_id=row.course_id, order=row.order, title=row.title)


def _row_to_lesson(row: LessonRow) -> Lesson:
    return Lesson(
        id=row.id,
        module_id=row.module_id,
        title=row.title,
        order=row.order,
        is_published=row.is_published,
        is_free=row.is_free,
        video_duration=row.video_duration,
    )
