from __future__ import annotations

import unittest

from sqlalchemy import func, select, text

from tests.support import DatabaseTestCase, seed_district, seed_user

from site_tracker.errors import ConflictError, InvalidRequestError, NotFoundError, ReferenceNotFoundError
from site_tracker.models import Activity, Asset, Program, RelatedEntityType, Staff, UserRole
from site_tracker.repositories import activities, assets, districts, programs, sites, staff, users
from site_tracker.schemas import (
    ActivityCreate,
    AssetCreate,
    AssetUpdate,
    DistrictCreate,
    DistrictUpdate,
    ProgramCreate,
    ProgramUpdate,
    SiteCreate,
    SiteUpdate,
    StaffCreate,
    StaffUpdate,
    UserCreate,
    UserUpdate,
)
from site_tracker.security import verify_password


def _site_payload(site_id: str = "CLC-001", *, district: str = "North", name: str = "Riverside CLC") -> SiteCreate:
    return SiteCreate(
        site_id=site_id,
        name=name,
        type="Community Learning Centre",
        district=district,
        operational_status="Operational",
        assessment_status="Pending",
    )


def _count(db, model) -> int:  # type: ignore[no-untyped-def]
    return int(db.scalar(select(func.count()).select_from(model)))


class DistrictRepositoryTests(DatabaseTestCase):
    def test_north_south_scenario(self) -> None:
        north = districts.create_district(self.db, DistrictCreate(name="North", region="Upper"))

        site = sites.create_site(self.db, _site_payload())
        self.assertEqual(site.district, "North")

        with self.assertRaises(ReferenceNotFoundError):
            sites.create_site(self.db, _site_payload("CLC-002", district="South"))

        with self.assertRaises(ConflictError) as ctx:
            districts.delete_district(self.db, north.id)
        self.assertEqual(ctx.exception.code, "DISTRICT_HAS_SITES")

        self.assertTrue(sites.delete_site(self.db, site.id))
        self.assertTrue(districts.delete_district(self.db, north.id))
        self.assertIsNone(districts.get_district(self.db, north.id))

    def test_rename_carries_sites_and_keeps_delete_guard(self) -> None:
        north = districts.create_district(self.db, DistrictCreate(name="North"))
        site = sites.create_site(self.db, _site_payload())

        renamed = districts.update_district(self.db, north.id, DistrictUpdate(name="Renamed"))

        self.assertEqual(renamed.name, "Renamed")
        self.db.expire_all()
        self.assertEqual(sites.get_site(self.db, site.id).district, "Renamed")  # type: ignore[union-attr]
        with self.assertRaises(ConflictError) as ctx:
            districts.delete_district(self.db, north.id)
        self.assertEqual(ctx.exception.code, "DISTRICT_HAS_SITES")
        self.assertIsNotNone(districts.get_district(self.db, north.id))

    def test_delete_missing_district_returns_false(self) -> None:
        self.assertFalse(districts.delete_district(self.db, 999))

    def test_districts_are_listed_by_name(self) -> None:
        for name in ("West", "East", "North"):
            seed_district(self.db, name)

        names = [item.name for item in districts.list_districts(self.db)]

        self.assertEqual(names, ["East", "North", "West"])

    def test_update_missing_district_raises_not_found(self) -> None:
        with self.assertRaises(NotFoundError):
            districts.update_district(self.db, 404, DistrictUpdate(name="Nowhere"))


class SiteRepositoryTests(DatabaseTestCase):
    def setUp(self) -> None:
        super().setUp()
        seed_district(self.db, "North")
        seed_district(self.db, "Central")

    def test_create_then_get_returns_supplied_values(self) -> None:
        payload = SiteCreate(
            site_id="CLC-010",
            name="Hilltop",
            type="Satellite",
            district="North",
            operational_status="Operational",
            assessment_status="Complete",
            gps_lat="-25.75",
            classrooms="12",
            has_library=True,
            renewal_date="2027-01-31",
            images=["https://img.example/1.jpg"],
        )

        created = sites.create_site(self.db, payload)
        fetched = sites.get_site(self.db, created.id)

        self.assertIsNotNone(fetched)
        assert fetched is not None
        self.assertEqual(fetched.site_id, "CLC-010")
        self.assertAlmostEqual(fetched.gps_lat or 0.0, -25.75)
        self.assertEqual(fetched.classrooms, 12)
        self.assertIs(fetched.has_library, True)
        self.assertIs(fetched.has_staff_facilities, False)
        self.assertEqual(fetched.renewal_date, "2027-01-31")
        self.assertEqual(fetched.images, ["https://img.example/1.jpg"])

    def test_duplicate_site_code_is_a_conflict(self) -> None:
        sites.create_site(self.db, _site_payload())

        with self.assertRaises(ConflictError):
            sites.create_site(self.db, _site_payload(name="Another"))

    def test_empty_update_changes_nothing(self) -> None:
        site = sites.create_site(self.db, _site_payload())
        user = seed_user(self.db, "assessor", role=UserRole.FIELD_ASSESSOR)

        updated = sites.update_site(self.db, site.id, SiteUpdate(), visited_by=user.id)

        self.assertEqual(updated.name, "Riverside CLC")
        self.assertIsNone(updated.last_visited_by)
        self.assertIsNone(updated.last_visit_date)

    def test_partial_update_changes_only_supplied_fields(self) -> None:
        site = sites.create_site(self.db, _site_payload())
        user = seed_user(self.db, "assessor", role=UserRole.FIELD_ASSESSOR)

        updated = sites.update_site(
            self.db,
            site.id,
            SiteUpdate(assessment_status="Complete", district="Central"),
            visited_by=user.id,
        )

        self.assertEqual(updated.assessment_status, "Complete")
        self.assertEqual(updated.district, "Central")
        self.assertEqual(updated.name, "Riverside CLC")
        self.assertEqual(updated.operational_status, "Operational")
        self.assertEqual(updated.last_visited_by, user.id)
        self.assertIsNotNone(updated.last_visit_date)

    def test_update_to_unknown_district_is_rejected(self) -> None:
        site = sites.create_site(self.db, _site_payload())

        with self.assertRaises(ReferenceNotFoundError):
            sites.update_site(self.db, site.id, SiteUpdate(district="South"))

        self.db.expire_all()
        self.assertEqual(sites.get_site(self.db, site.id).district, "North")  # type: ignore[union-attr]

    def test_deleting_site_detaches_children(self) -> None:
        site = sites.create_site(self.db, _site_payload())
        member = staff.create_staff(
            self.db,
            StaffCreate(staff_id="ST-1", first_name="Ada", last_name="Moyo", site_id=site.id),
        )

        self.assertTrue(sites.delete_site(self.db, site.id))

        self.db.expire_all()
        remaining = staff.get_staff(self.db, member.id)
        self.assertIsNotNone(remaining)
        self.assertIsNone(remaining.site_id)  # type: ignore[union-attr]

    def test_image_append_and_remove(self) -> None:
        site = sites.create_site(self.db, _site_payload())

        sites.append_site_images(self.db, site.id, ["a.jpg", "b.jpg"])
        site = sites.append_site_images(self.db, site.id, ["c.jpg"])
        self.assertEqual(site.images, ["a.jpg", "b.jpg", "c.jpg"])

        site, removed = sites.remove_site_image(self.db, site.id, 1)
        self.assertEqual(removed, "b.jpg")
        self.assertEqual(site.images, ["a.jpg", "c.jpg"])

        with self.assertRaises(InvalidRequestError):
            sites.remove_site_image(self.db, site.id, 2)
        with self.assertRaises(InvalidRequestError):
            sites.remove_site_image(self.db, site.id, -1)

    def test_images_stored_as_json_text(self) -> None:
        site = sites.create_site(self.db, _site_payload())
        raw_empty = self.db.execute(text("SELECT images FROM sites WHERE id = :id"), {"id": site.id}).scalar()
        self.assertIsNone(raw_empty)
        self.assertEqual(sites.get_site(self.db, site.id).images, [])  # type: ignore[union-attr]

        sites.append_site_images(self.db, site.id, ["a.jpg"])
        raw = self.db.execute(text("SELECT images FROM sites WHERE id = :id"), {"id": site.id}).scalar()
        self.assertEqual(raw, '["a.jpg"]')


class ChildRepositoryTests(DatabaseTestCase):
    def setUp(self) -> None:
        super().setUp()
        seed_district(self.db, "North")
        self.site = sites.create_site(self.db, _site_payload())

    def test_unknown_site_reference_writes_nothing(self) -> None:
        with self.assertRaises(ReferenceNotFoundError):
            staff.create_staff(self.db, StaffCreate(staff_id="ST-9", first_name="A", last_name="B", site_id=999))
        with self.assertRaises(ReferenceNotFoundError):
            assets.create_asset(
                self.db,
                AssetCreate(asset_id="AS-9", name="Laptop", category="IT", condition="Good", site_id=999),
            )
        with self.assertRaises(ReferenceNotFoundError):
            programs.create_program(
                self.db,
                ProgramCreate(program_id="PR-9", name="Literacy", category="Education", status="Active", site_id=999),
            )

        self.assertEqual(_count(self.db, Staff), 0)
        self.assertEqual(_count(self.db, Asset), 0)
        self.assertEqual(_count(self.db, Program), 0)

    def test_staff_ordering_and_site_listing(self) -> None:
        staff.create_staff(self.db, StaffCreate(staff_id="ST-1", first_name="Zola", last_name="Banda", site_id=self.site.id))
        staff.create_staff(self.db, StaffCreate(staff_id="ST-2", first_name="Amos", last_name="Banda"))
        staff.create_staff(self.db, StaffCreate(staff_id="ST-3", first_name="Ben", last_name="Achebe", site_id=self.site.id))

        everyone = [item.staff_id for item in staff.list_staff(self.db)]
        at_site = [item.staff_id for item in staff.list_staff_for_site(self.db, self.site.id)]

        self.assertEqual(everyone, ["ST-3", "ST-2", "ST-1"])
        self.assertEqual(at_site, ["ST-3", "ST-1"])

    def test_staff_lists_persist_as_json(self) -> None:
        member = staff.create_staff(
            self.db,
            StaffCreate(
                staff_id="ST-1",
                first_name="Ada",
                last_name="Moyo",
                qualifications=["BEd", "PGDE"],
                workload="40",
            ),
        )

        raw = self.db.execute(text("SELECT qualifications, skills FROM staff WHERE id = :id"), {"id": member.id}).one()
        self.assertEqual(raw[0], '["BEd", "PGDE"]')
        self.assertIsNone(raw[1])

        self.db.expire_all()
        fetched = staff.get_staff(self.db, member.id)
        assert fetched is not None
        self.assertEqual(fetched.qualifications, ["BEd", "PGDE"])
        self.assertEqual(fetched.skills, [])
        self.assertEqual(fetched.workload, 40)

    def test_staff_site_reference_checked_only_when_updated(self) -> None:
        member = staff.create_staff(self.db, StaffCreate(staff_id="ST-1", first_name="Ada", last_name="Moyo"))

        updated = staff.update_staff(self.db, member.id, StaffUpdate(position="Facilitator"))
        self.assertEqual(updated.position, "Facilitator")

        with self.assertRaises(ReferenceNotFoundError):
            staff.update_staff(self.db, member.id, StaffUpdate(site_id=12345))

    def test_asset_serial_numbers_default_to_empty_array(self) -> None:
        asset = assets.create_asset(
            self.db,
            AssetCreate(asset_id="AS-1", name="Projector", category="AV", condition="Fair", purchase_price="1500.50"),
        )

        raw = self.db.execute(text("SELECT serial_numbers FROM assets WHERE id = :id"), {"id": asset.id}).scalar()
        self.assertEqual(raw, "[]")
        self.assertEqual(asset.serial_numbers, [])
        self.assertAlmostEqual(asset.purchase_price or 0.0, 1500.5)

        updated = assets.update_asset(self.db, asset.id, AssetUpdate(serial_numbers=["SN-1", "SN-2"]))
        self.assertEqual(updated.serial_numbers, ["SN-1", "SN-2"])

    def test_program_update_rejects_end_before_start(self) -> None:
        program = programs.create_program(
            self.db,
            ProgramCreate(
                program_id="PR-1",
                name="Numeracy",
                category="Education",
                status="Planned",
                start_date="2026-02-01",
            ),
        )

        with self.assertRaises(InvalidRequestError):
            programs.update_program(self.db, program.id, ProgramUpdate(end_date="2026-01-01"))


class UserRepositoryTests(DatabaseTestCase):
    def test_password_blank_keeps_hash_and_new_value_rehashes(self) -> None:
        user = users.create_user(
            self.db,
            UserCreate(username="thandi", password="initial1", name="Thandi", role="Data Analyst"),
        )
        original_hash = user.password_hash

        unchanged = users.update_user(self.db, user.id, UserUpdate(password=""))
        self.assertEqual(unchanged.password_hash, original_hash)

        changed = users.update_user(self.db, user.id, UserUpdate(password="newpass123"))
        self.assertNotEqual(changed.password_hash, original_hash)
        self.assertTrue(verify_password("newpass123", changed.password_hash))
        self.assertFalse(verify_password("initial1", changed.password_hash))

    def test_duplicate_username_is_a_conflict(self) -> None:
        users.create_user(self.db, UserCreate(username="thandi", password="initial1", name="T", role="Viewer"))

        with self.assertRaises(ConflictError) as ctx:
            users.create_user(self.db, UserCreate(username="thandi", password="other12", name="T2", role="Viewer"))
        self.assertEqual(ctx.exception.code, "USERNAME_TAKEN")

    def test_password_is_stored_hashed(self) -> None:
        user = users.create_user(self.db, UserCreate(username="sipho", password="plain-pass", name="S", role="Admin"))

        raw = self.db.execute(text("SELECT password FROM users WHERE id = :id"), {"id": user.id}).scalar()
        self.assertNotEqual(raw, "plain-pass")
        self.assertTrue(verify_password("plain-pass", raw))


class ActivityRepositoryTests(DatabaseTestCase):
    def test_metadata_merge_is_shallow(self) -> None:
        activity = activities.create_activity(
            self.db,
            ActivityCreate(
                type="site_update",
                description="Updated",
                metadata={"fields": ["name"], "source": {"app": "web", "version": 1}},
            ),
        )

        merged = activities.merge_activity_metadata(
            self.db,
            activity.id,
            {"reviewed": True, "source": {"app": "mobile"}},
        )

        self.assertEqual(
            merged.activity_metadata,
            {"fields": ["name"], "source": {"app": "mobile"}, "reviewed": True},
        )

    def test_merge_on_missing_activity_raises(self) -> None:
        with self.assertRaises(NotFoundError):
            activities.merge_activity_metadata(self.db, 77, {"a": 1})

    def test_user_activity_feed_includes_performed_and_targeted(self) -> None:
        actor = seed_user(self.db, "admin")
        other = seed_user(self.db, "viewer", role=UserRole.VIEWER)

        activities.create_activity(self.db, ActivityCreate(type="site_creation", description="a", performed_by=actor.id))
        activities.create_activity(
            self.db,
            ActivityCreate(
                type="user_update",
                description="b",
                related_entity_type=RelatedEntityType.USER,
                related_entity_id=actor.id,
                performed_by=other.id,
            ),
        )
        activities.create_activity(self.db, ActivityCreate(type="site_update", description="c", performed_by=other.id))

        feed = activities.list_activities_for_user(self.db, actor.id)

        self.assertEqual(sorted(item.description for item in feed), ["a", "b"])

    def test_unknown_performer_is_rejected(self) -> None:
        with self.assertRaises(ReferenceNotFoundError):
            activities.create_activity(self.db, ActivityCreate(type="x", description="y", performed_by=500))
        self.assertEqual(_count(self.db, Activity), 0)

    def test_activities_newest_first(self) -> None:
        first = activities.create_activity(self.db, ActivityCreate(type="t", description="first"))
        second = activities.create_activity(self.db, ActivityCreate(type="t", description="second"))

        listed = [item.id for item in activities.list_activities(self.db)]

        self.assertEqual(listed[0], second.id)
        self.assertIn(first.id, listed)


if __name__ == "__main__":
    unittest.main()
