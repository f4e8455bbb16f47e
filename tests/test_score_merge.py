# tests/test_score_merge.py

"""
Score Merge Engine Tests - per-identity score maps and batch semantics
"""

import pytest

from carver import crud
from carver.core.exceptions import (
    DatabaseConnectionException,
    EntityNotFoundException,
    InvalidArgumentException,
)
from carver.db.session import SessionLocal
from carver.schemas.carver_matrix import ItemScoreUpdate
from carver.services.score_merge import (
    FIVE_POINT_RANGE,
    TEN_POINT_RANGE,
    ScoreMergeEngine,
    score_range,
)


ALICE = "alice@example.com"
BOB = "bob@example.com"


def reload_item(db, item_id):
    db.expire_all()
    return crud.carver_item.get(db, item_id)


class TestItemScoreWrite:
    """Tests for the single-key score write on CarverItem rows."""

    def test_writes_only_named_criteria(self, db, make_matrix):
        pump = make_matrix().items[0]
        crud.carver_item.merge_scores(db, item=pump, scores={"criticality": 4}, identity=ALICE)

        assert pump.criticality == {ALICE: 4}
        assert pump.effect == {}

    def test_unknown_criterion_is_ignored(self, db, make_matrix):
        pump = make_matrix().items[0]
        crud.carver_item.merge_scores(db, item=pump, scores={"threat": 9, "criticality": 2}, identity=ALICE)

        assert reload_item(db, pump.item_id).criticality == {ALICE: 2}

    def test_other_identities_keep_their_keys(self, db, make_matrix):
        pump = make_matrix().items[0]
        crud.carver_item.merge_scores(db, item=pump, scores={"effect": 3}, identity=BOB)
        crud.carver_item.merge_scores(db, item=pump, scores={"effect": 5}, identity=ALICE)

        assert reload_item(db, pump.item_id).effect == {BOB: 3, ALICE: 5}

    def test_empty_scores_leave_item_unchanged(self, db, make_matrix):
        pump = make_matrix().items[0]
        crud.carver_item.merge_scores(db, item=pump, scores={}, identity=ALICE)

        assert reload_item(db, pump.item_id).score_maps()["criticality"] == {}


class TestOverlappingWriters:
    """Two sessions that loaded the same item before either one committed."""

    def test_different_identities_both_survive(self, make_matrix):
        matrix_id = make_matrix().matrix_id
        first, second = SessionLocal(), SessionLocal()
        try:
            first_matrix = crud.carver_matrix.get_with_items(first, matrix_id=matrix_id)
            second_matrix = crud.carver_matrix.get_with_items(second, matrix_id=matrix_id)
            item_id = first_matrix.items[0].item_id
            assert first_matrix.items[0].criticality == {}
            assert second_matrix.items[0].criticality == {}

            ScoreMergeEngine(first).apply_updates(
                first_matrix, [ItemScoreUpdate(item_id=item_id, criticality=3)], ALICE
            ).raise_for_error()
            ScoreMergeEngine(second).apply_updates(
                second_matrix, [ItemScoreUpdate(item_id=item_id, criticality=5)], BOB
            ).raise_for_error()
        finally:
            first.close()
            second.close()

        check = SessionLocal()
        try:
            assert crud.carver_item.get(check, item_id).criticality == {ALICE: 3, BOB: 5}
        finally:
            check.close()

    def test_same_identity_last_write_wins(self, make_matrix):
        matrix_id = make_matrix().matrix_id
        first, second = SessionLocal(), SessionLocal()
        try:
            first_matrix = crud.carver_matrix.get_with_items(first, matrix_id=matrix_id)
            second_matrix = crud.carver_matrix.get_with_items(second, matrix_id=matrix_id)
            item_id = first_matrix.items[0].item_id

            ScoreMergeEngine(first).apply_updates(
                first_matrix, [ItemScoreUpdate(item_id=item_id, effect=2)], ALICE
            )
            ScoreMergeEngine(second).apply_updates(
                second_matrix, [ItemScoreUpdate(item_id=item_id, effect=9)], ALICE
            )
        finally:
            first.close()
            second.close()

        check = SessionLocal()
        try:
            assert crud.carver_item.get(check, item_id).effect == {ALICE: 9}
        finally:
            check.close()


class TestStoreFailureMidBatch:

    def test_failed_commit_stops_batch_and_keeps_earlier_records(self, db, make_matrix, fail_nth_commit):
        matrix = make_matrix()
        pump, valve = matrix.items
        fail_nth_commit(2)

        result = ScoreMergeEngine(db).apply_updates(
            matrix,
            [
                ItemScoreUpdate(item_id=pump.item_id, criticality=6),
                ItemScoreUpdate(item_id=valve.item_id, criticality=4),
                ItemScoreUpdate(item_id=pump.item_id, effect=1),
            ],
            ALICE,
        )

        assert isinstance(result.error, DatabaseConnectionException)
        assert result.error.message == "Failed to persist item update: database unavailable"
        assert result.failed_index == 1
        assert result.applied == 1
        assert reload_item(db, pump.item_id).criticality == {ALICE: 6}
        assert reload_item(db, pump.item_id).effect == {}
        assert reload_item(db, valve.item_id).criticality == {}


class TestScoreRange:

    def test_five_point_scoring(self, make_matrix):
        matrix = make_matrix(five_point_scoring=True)
        assert score_range(matrix) == FIVE_POINT_RANGE

    def test_ten_point_scoring_by_default(self, make_matrix):
        matrix = make_matrix()
        assert score_range(matrix) == TEN_POINT_RANGE


class TestApplyUpdates:
    """Tests for ScoreMergeEngine.apply_updates."""

    def test_scores_from_two_identities_coexist(self, db, make_matrix):
        matrix = make_matrix()
        pump = matrix.items[0]
        engine = ScoreMergeEngine(db)

        engine.apply_updates(matrix, [ItemScoreUpdate(item_id=pump.item_id, criticality=5)], ALICE)
        engine.apply_updates(matrix, [ItemScoreUpdate(item_id=pump.item_id, criticality=3)], BOB)

        stored = reload_item(db, pump.item_id)
        assert stored.criticality == {ALICE: 5, BOB: 3}

    def test_same_identity_overwrites_its_score(self, db, make_matrix):
        matrix = make_matrix()
        pump = matrix.items[0]
        engine = ScoreMergeEngine(db)

        engine.apply_updates(matrix, [ItemScoreUpdate(item_id=pump.item_id, vulnerability=2)], ALICE)
        engine.apply_updates(matrix, [ItemScoreUpdate(item_id=pump.item_id, vulnerability=7)], ALICE)

        stored = reload_item(db, pump.item_id)
        assert stored.vulnerability == {ALICE: 7}

    def test_absent_criteria_are_left_untouched(self, db, make_matrix):
        matrix = make_matrix()
        pump = matrix.items[0]
        engine = ScoreMergeEngine(db)

        engine.apply_updates(matrix, [ItemScoreUpdate(item_id=pump.item_id, effect=4)], BOB)
        engine.apply_updates(matrix, [ItemScoreUpdate(item_id=pump.item_id, criticality=6)], ALICE)

        stored = reload_item(db, pump.item_id)
        assert stored.effect == {BOB: 4}
        assert stored.criticality == {ALICE: 6}
        assert stored.recognizability == {}

    def test_successful_batch_returns_items_in_order(self, db, make_matrix):
        matrix = make_matrix()
        pump, valve = matrix.items
        result = ScoreMergeEngine(db).apply_updates(
            matrix,
            [
                ItemScoreUpdate(item_id=valve.item_id, accessibility=1),
                ItemScoreUpdate(item_id=pump.item_id, accessibility=9),
            ],
            ALICE,
        )

        assert result.ok
        assert result.applied == 2
        assert [item.item_id for item in result.items] == [valve.item_id, pump.item_id]
        assert result.raise_for_error() == result.items

    def test_item_from_another_matrix_is_rejected(self, db, make_matrix):
        target = make_matrix(name="Target")
        elsewhere = make_matrix(name="Elsewhere", item_names=("Generator",))
        generator = elsewhere.items[0]

        result = ScoreMergeEngine(db).apply_updates(
            target, [ItemScoreUpdate(item_id=generator.item_id, criticality=5)], ALICE
        )

        assert not result.ok
        assert isinstance(result.error, InvalidArgumentException)
        assert result.failed_index == 0
        assert result.applied == 0
        assert f"does not belong to matrix {target.matrix_id}" in result.error.message
        assert reload_item(db, generator.item_id).criticality == {}

    def test_partial_batch_keeps_earlier_records(self, db, make_matrix):
        matrix = make_matrix()
        pump, valve = matrix.items

        result = ScoreMergeEngine(db).apply_updates(
            matrix,
            [
                ItemScoreUpdate(item_id=pump.item_id, criticality=8),
                ItemScoreUpdate(item_id=999999, criticality=2),
                ItemScoreUpdate(item_id=valve.item_id, criticality=4),
            ],
            ALICE,
        )

        assert result.failed_index == 1
        assert result.applied == 1
        assert reload_item(db, pump.item_id).criticality == {ALICE: 8}
        assert reload_item(db, valve.item_id).criticality == {}

    def test_raise_for_error_reraises_the_failure(self, db, make_matrix):
        matrix = make_matrix()
        result = ScoreMergeEngine(db).apply_updates(
            matrix, [ItemScoreUpdate(item_id=999999, effect=1)], ALICE
        )

        with pytest.raises(InvalidArgumentException):
            result.raise_for_error()

    def test_mapping_records_ignore_unrecognized_fields(self, db, make_matrix):
        matrix = make_matrix()
        pump = matrix.items[0]

        result = ScoreMergeEngine(db).apply_updates(
            matrix,
            [{"itemId": pump.item_id, "recoverability": 3, "threat": 10}],
            ALICE,
        )

        assert result.ok
        assert reload_item(db, pump.item_id).recoverability == {ALICE: 3}

    def test_mapping_record_without_item_id_fails(self, db, make_matrix):
        matrix = make_matrix()
        result = ScoreMergeEngine(db).apply_updates(matrix, [{"criticality": 3}], ALICE)

        assert result.failed_index == 0
        assert result.error.message == "itemId required"

    def test_empty_batch_is_a_no_op(self, db, make_matrix):
        matrix = make_matrix()
        result = ScoreMergeEngine(db).apply_updates(matrix, [], ALICE)

        assert result.ok
        assert result.items == []

    @pytest.mark.parametrize(
        "matrix_given, updates, identity, message",
        [
            (False, [], ALICE, "matrix required"),
            (True, None, ALICE, "updates required"),
            (True, [], "", "identity required"),
            (True, [], None, "identity required"),
        ],
    )
    def test_missing_arguments_raise(self, db, make_matrix, matrix_given, updates, identity, message):
        matrix = make_matrix() if matrix_given else None

        with pytest.raises(InvalidArgumentException, match=message):
            ScoreMergeEngine(db).apply_updates(matrix, updates, identity)


class TestScoreRangeEnforcement:

    def test_out_of_range_score_rejected_when_enforced(self, db, make_matrix):
        matrix = make_matrix(five_point_scoring=True)
        pump = matrix.items[0]

        result = ScoreMergeEngine(db, enforce_range=True).apply_updates(
            matrix, [ItemScoreUpdate(item_id=pump.item_id, criticality=7)], ALICE
        )

        assert not result.ok
        assert "outside 1-5" in result.error.message
        assert reload_item(db, pump.item_id).criticality == {}

    def test_ten_point_matrix_accepts_seven(self, db, make_matrix):
        matrix = make_matrix()
        pump = matrix.items[0]

        result = ScoreMergeEngine(db, enforce_range=True).apply_updates(
            matrix, [ItemScoreUpdate(item_id=pump.item_id, criticality=7)], ALICE
        )

        assert result.ok

    def test_range_unchecked_by_default(self, db, make_matrix):
        matrix = make_matrix(five_point_scoring=True)
        pump = matrix.items[0]

        result = ScoreMergeEngine(db).apply_updates(
            matrix, [ItemScoreUpdate(item_id=pump.item_id, criticality=42)], ALICE
        )

        assert result.ok
        assert reload_item(db, pump.item_id).criticality == {ALICE: 42}


class TestUpdateItemScoresThroughService:

    def test_unknown_matrix_is_not_found(self, service):
        with pytest.raises(EntityNotFoundException):
            service.update_item_scores(424242, ALICE, [])

    def test_scores_applied_through_service(self, db, service, make_matrix):
        matrix = make_matrix()
        pump = matrix.items[0]

        result = service.update_item_scores(
            matrix.matrix_id, BOB, [ItemScoreUpdate(item_id=pump.item_id, effect=2)]
        )

        assert result.ok
        assert reload_item(db, pump.item_id).effect == {BOB: 2}
