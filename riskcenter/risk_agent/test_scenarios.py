import pytest

from riskcenter.risk_agent import scenarios
from riskcenter.risk_agent.errors import NotFound
from riskcenter.risk_agent.report_models import ContentTag
from riskcenter.risk_agent.scenarios import STEP_TITLES, load_scenario, scenario_keys


def test_scenario_keys():
    assert scenario_keys() == ["parentComplaint", "facultyLeave"]


def test_parent_complaint_walkthrough():
    report = load_scenario("parentComplaint").unwrap()

    assert report.scenario_key == "parentComplaint"
    assert report.display_date() == "August 12, 2025"
    assert [s.title for s in report.steps] == [STEP_TITLES[i] for i in range(1, 7)]
    assert report.step(4).content.tag is ContentTag.OPTION_SET
    assert [d.get("riskScore") for _, d in report.step(4).content.options] == ["Low", "Moderate", "High"]

    steps = report.step(6).content.implementation_steps
    assert len(steps) == 5
    assert [s.split(" ", 1)[0] for s in steps] == ["1.", "2.", "3.", "4.", "5."]


def test_faculty_leave_walkthrough():
    report = load_scenario("facultyLeave").unwrap()

    assert report.display_date() == "August 10, 2025"
    assert all(d.get("legalReference") for _, d in report.step(5).content.options)
    assert len(report.step(6).content.implementation_steps) == 4


def test_unknown_scenario_is_not_found():
    result = load_scenario("nope")

    assert not result.success
    assert isinstance(result.error, NotFound)


def test_scenarios_are_cached():
    assert load_scenario("facultyLeave") is load_scenario("facultyLeave")


def test_unknown_keys_do_not_grow_the_cache():
    for key in scenario_keys():
        load_scenario(key)
    before = scenarios._validated_scenario.cache_info().currsize

    for n in range(200):
        assert isinstance(load_scenario(f"nope-{n}").error, NotFound)

    assert scenarios._validated_scenario.cache_info().currsize == before == len(scenario_keys())


@pytest.mark.parametrize("key", ["parentComplaint", "facultyLeave"])
def test_scenario_steps_use_expected_variants(key):
    report = load_scenario(key).unwrap()

    assert [s.content.tag for s in report.steps] == [
        ContentTag.KEY_VALUE_LIST,
        ContentTag.KEY_VALUE_LIST,
        ContentTag.KEY_VALUE_LIST,
        ContentTag.OPTION_SET,
        ContentTag.OPTION_SET,
        ContentTag.RECOMMENDATION_BLOCK,
    ]
