"""Tests for fantasy_quiz.sync: quiz → profile → UI coupling."""

import pytest

from fantasy_quiz.models import FEMALE_PARTNER_OPTIONS, MALE_PARTNER_OPTIONS
from fantasy_quiz.stores import AppStores
from fantasy_quiz.sync import StoreSync

from conftest import ARIA_ANSWERS


@pytest.fixture
def sync(stores: AppStores) -> StoreSync:
    s = StoreSync(stores)
    s.attach()
    yield s
    s.detach()


def test_answers_flow_into_profile(stores: AppStores, sync: StoreSync):
    for qid, answer in ARIA_ANSWERS.items():
        stores.quiz.set_answer(qid, answer)
    assert stores.player.is_profile_complete
    assert stores.player.profile["race"] == "Elf"
    assert stores.player.profile["romance_interest"] is False


def test_empty_answers_leave_profile_alone(stores: AppStores):
    stores.player.update_profile({"name": "Kept"})
    StoreSync(stores).sync_quiz_to_player()
    assert stores.player.profile["name"] == "Kept"


def test_completion_moves_quiz_page_to_story(stores: AppStores, sync: StoreSync):
    stores.ui.set_current_page("quiz")
    stores.quiz.complete_quiz()
    assert stores.ui.current_page == "story"


def test_completion_does_not_move_other_pages(stores: AppStores, sync: StoreSync):
    stores.quiz.complete_quiz()
    assert stores.ui.current_page == "landing"


def test_page_change_after_completion_is_synced(stores: AppStores, sync: StoreSync):
    stores.quiz.complete_quiz()
    stores.ui.set_current_page("quiz")
    assert stores.ui.current_page == "story"


def test_quiz_reset_resets_story(stores: AppStores, aria, story):
    stores.story.complete_generation(stores.story.start_generation(aria), story)
    StoreSync(stores).sync_quiz_reset_to_story()
    assert stores.story.phase == "idle"


def test_gender_change_recomputes_partner_options(stores: AppStores, sync: StoreSync):
    quiz = stores.quiz
    quiz.set_answer("romanceInterest", "Yes")
    partner = next(q for q in quiz.visible_questions() if q.id == "romanticPartner")

    quiz.set_answer("gender", "Male")
    male = quiz.question_options(partner)
    quiz.set_answer("gender", "Female")
    female = quiz.question_options(partner)

    assert male == list(MALE_PARTNER_OPTIONS)
    assert female == list(FEMALE_PARTNER_OPTIONS)
    assert not set(male) & set(female)
    assert stores.player.profile["gender"] == "Female"


def test_detach_stops_syncing(stores: AppStores):
    sync = StoreSync(stores)
    sync.attach()
    sync.attach()
    sync.detach()
    stores.quiz.set_answer("name", "Aria")
    assert "name" not in stores.player.profile
