"""
Tests for manual entries, edits, deletes and the load-time self-healing pass.
"""

import datetime

import pytest

from timekeeping.domain.errors import NotFoundError, ValidationError
from timekeeping.domain.models import NewTimeEntry
from timekeeping.services.entry_service import EntryService


@pytest.fixture
def service(entry_repo, project_repo, task_repo):
    return EntryService(entry_repo, project_repo, task_repo)


def _at(hour, minute=0, day=10):
    return datetime.datetime(2024, 1, day, hour, minute)


class TestManualEntry:

    @pytest.mark.asyncio
    async def test_manual_entry_is_created(self, service, seeded):
        entry = await service.add_manual_entry(
            seeded.user.id, seeded.client.id, seeded.project.id, seeded.task.id,
            _at(9), _at(10, 30)
        )
        assert entry.duration == pytest.approx(90.0)
        assert entry.date == "2024-01-10"
        assert entry.description == "Manual entry"

    @pytest.mark.asyncio
    async def test_inverted_range_writes_nothing(self, service, seeded, entry_repo):
        with pytest.raises(ValidationError):
            await service.add_manual_entry(
                seeded.user.id, seeded.client.id, seeded.project.id, seeded.task.id,
                _at(9), _at(8)
            )
        assert await entry_repo.list_for_user(seeded.user.id) == []

    @pytest.mark.asyncio
    async def test_missing_task_is_rejected(self, service, seeded):
        with pytest.raises(ValidationError):
            await service.add_manual_entry(
                seeded.user.id, seeded.client.id, seeded.project.id, None, _at(9), _at(10)
            )

    @pytest.mark.asyncio
    async def test_task_of_another_project_is_rejected(self, service, seeded):
        with pytest.raises(ValidationError):
            await service.add_manual_entry(
                seeded.user.id, seeded.client.id, seeded.other_project.id, seeded.task.id,
                _at(9), _at(10)
            )

    @pytest.mark.asyncio
    async def test_overnight_entry_keeps_start_date(self, service, seeded):
        entry = await service.add_manual_entry(
            seeded.user.id, seeded.client.id, seeded.project.id, seeded.task.id,
            _at(23, 50), _at(0, 10, day=11), description="Deploy"
        )
        assert entry.date == "2024-01-10"
        assert entry.duration == pytest.approx(20.0)


class TestEdit:

    @pytest.mark.asyncio
    async def test_moving_end_rederives_duration_and_date(self, service, seeded):
        entry = await service.add_manual_entry(
            seeded.user.id, seeded.client.id, seeded.project.id, seeded.task.id, _at(9), _at(10)
        )

        edited = await service.edit_entry(entry.id, end_time=_at(11, 15))
        assert edited.duration == pytest.approx(135.0)

        moved = await service.edit_entry(entry.id, start_time=_at(8, day=9), end_time=_at(9, day=9))
        assert moved.date == "2024-01-09"
        assert moved.duration == pytest.approx(60.0)

    @pytest.mark.asyncio
    async def test_description_only_edit_keeps_times(self, service, seeded):
        entry = await service.add_manual_entry(
            seeded.user.id, seeded.client.id, seeded.project.id, seeded.task.id, _at(9), _at(10)
        )
        edited = await service.edit_entry(entry.id, description="Review")
        assert edited.description == "Review"
        assert edited.start_time == entry.start_time
        assert edited.duration == entry.duration

    @pytest.mark.asyncio
    async def test_edit_to_inverted_range_is_rejected(self, service, seeded, entry_repo):
        entry = await service.add_manual_entry(
            seeded.user.id, seeded.client.id, seeded.project.id, seeded.task.id, _at(9), _at(10)
        )
        with pytest.raises(ValidationError):
            await service.edit_entry(entry.id, start_time=_at(11))
        assert (await entry_repo.get_by_id(entry.id)).start_time == _at(9)

    @pytest.mark.asyncio
    async def test_edit_of_vanished_entry(self, service):
        with pytest.raises(NotFoundError):
            await service.edit_entry(999, description="gone")


class TestDeleteAndLoad:

    @pytest.mark.asyncio
    async def test_delete(self, service, seeded, entry_repo):
        entry = await service.add_manual_entry(
            seeded.user.id, seeded.client.id, seeded.project.id, seeded.task.id, _at(9), _at(10)
        )
        await service.delete_entry(entry.id)
        assert await entry_repo.get_by_id(entry.id) is None

        with pytest.raises(NotFoundError):
            await service.delete_entry(entry.id)

    @pytest.mark.asyncio
    async def test_load_heals_drifted_durations(self, service, seeded, entry_repo):
        drifted = await entry_repo.create(NewTimeEntry(
            user_id=seeded.user.id,
            start_time=_at(9),
            end_time=_at(9) + datetime.timedelta(minutes=3.5),
            duration=5.0,
            date="2024-01-10",
        ))

        entries = await service.load_entries(seeded.user.id)

        assert [e.duration for e in entries] == [pytest.approx(3.5)]
        assert [e.id for e in service.last_report.corrected] == [drifted.id]

        await service.load_entries(seeded.user.id)
        assert service.last_report.writes == 0
