from __future__ import annotations

import numpy as np
import pytest

from tracking_od.constants import SPEED_OF_LIGHT_MPS
from tracking_od.environment import Environment
from tracking_od.errors import IncompatibleLinkEnd
from tracking_od.models import LinkEndId, LinkEnds, LinkEndType, ObservableType
from tracking_od.observations import ObservationModel
from tracking_od.partials import (
    AngularPositionScaling,
    DifferencedRangeScaling,
    NWayRangeScaling,
    OneWayRangeScaling,
    create_link_end_scaling,
)

TX = LinkEndType.TRANSMITTER
RTX = LinkEndType.RETRANSMITTER
RX = LinkEndType.RECEIVER


def _static_states() -> np.ndarray:
    return np.array(
        [
            [0.0, 0.0, 0.0, 0.0, 0.0, 0.0],
            [SPEED_OF_LIGHT_MPS, 0.0, 0.0, 0.0, 0.0, 0.0],
        ]
    )


def _moving_states() -> np.ndarray:
    return np.array(
        [
            [1.0e6, -2.0e6, 3.0e5, 1.0e4, 2.0e4, -5.0e3],
            [7.0e8, 4.0e8, 1.0e8, 2.0e6, -1.0e6, 5.0e5],
        ]
    )


def test_one_way_unit_factor_for_static_ends() -> None:
    scaler = OneWayRangeScaling(SPEED_OF_LIGHT_MPS)
    scaler.update(_static_states(), np.array([0.0, 1.0]), RX)

    assert np.allclose(scaler.scaling_factor(RX), [[1.0, 0.0, 0.0]])
    assert np.allclose(scaler.scaling_factor(TX), [[-1.0, 0.0, 0.0]])
    assert scaler.light_time_partial_scaling() == pytest.approx(1.0)
    assert scaler.leg_scaling(0) == pytest.approx([SPEED_OF_LIGHT_MPS])


@pytest.mark.parametrize("fixed", [TX, RX])
def test_one_way_scaling_is_antisymmetric(fixed: LinkEndType) -> None:
    scaler = OneWayRangeScaling(SPEED_OF_LIGHT_MPS)
    scaler.update(_moving_states(), np.array([0.0, 2.7]), fixed)

    receiver = scaler.scaling_factor(RX)
    transmitter = scaler.scaling_factor(TX)

    assert np.allclose(receiver + transmitter, 0.0)
    assert not np.isclose(np.linalg.norm(receiver), 1.0, rtol=1e-6)


def test_one_way_factors_depend_on_the_free_end_velocity() -> None:
    states = _moving_states()
    scaler = OneWayRangeScaling(SPEED_OF_LIGHT_MPS)
    scaler.update(states, np.array([0.0, 2.7]), RX)

    unit = (states[1][:3] - states[0][:3]) / np.linalg.norm(states[1][:3] - states[0][:3])
    receiver_fixed = 1.0 / (1.0 - unit @ states[0][3:] / SPEED_OF_LIGHT_MPS)
    transmitter_fixed = 1.0 / (1.0 - unit @ states[1][3:] / SPEED_OF_LIGHT_MPS)

    assert scaler.light_time_partial_scaling(RX) == pytest.approx(receiver_fixed)
    assert scaler.light_time_partial_scaling(TX) == pytest.approx(transmitter_fixed)


def test_update_is_idempotent() -> None:
    scaler = OneWayRangeScaling(SPEED_OF_LIGHT_MPS)
    scaler.update(_moving_states(), np.array([0.0, 2.7]), RX)
    first = scaler.scaling_factor(RX).copy()
    scaler.update(_moving_states(), np.array([0.0, 2.7]), RX)

    assert np.array_equal(first, scaler.scaling_factor(RX))


def test_one_way_rejects_foreign_link_ends() -> None:
    scaler = OneWayRangeScaling(SPEED_OF_LIGHT_MPS)
    with pytest.raises(RuntimeError):
        scaler.scaling_factor(RX)

    scaler.update(_static_states(), np.array([0.0, 1.0]), RX)
    with pytest.raises(IncompatibleLinkEnd):
        scaler.scaling_factor(RTX)
    with pytest.raises(IncompatibleLinkEnd):
        scaler.light_time_partial_scaling(RTX)


def test_n_way_weights_are_unity_without_motion() -> None:
    link_ends = LinkEnds.from_mapping({TX: "A", RTX: "B", RX: "A"})
    states = np.vstack([_static_states(), _static_states()[::-1]])
    scaler = NWayRangeScaling(link_ends, SPEED_OF_LIGHT_MPS)
    scaler.update(states, np.array([0.0, 1.0, 1.0, 2.0]), RX)

    for fixed in (TX, RTX, RX):
        assert np.allclose(scaler.light_time_partial_scaling(fixed), [1.0, 1.0])
    assert np.allclose(scaler.state_scaling(0), [[-1.0, 0.0, 0.0]])
    assert np.allclose(scaler.state_scaling(3), [[-1.0, 0.0, 0.0]])
    assert np.allclose(scaler.scaling_factor(RTX), [[2.0, 0.0, 0.0]])
    with pytest.raises(IncompatibleLinkEnd):
        scaler.light_time_partial_scaling(LinkEndType.RETRANSMITTER2)


def test_differenced_scaling_combines_both_arcs() -> None:
    dt = 60.0
    scaler = DifferencedRangeScaling(
        OneWayRangeScaling(SPEED_OF_LIGHT_MPS), OneWayRangeScaling(SPEED_OF_LIGHT_MPS), dt
    )
    start = _moving_states()
    end = start.copy()
    end[:, :3] += dt * end[:, 3:]
    scaler.update(np.vstack([start, end]), np.array([0.0, 2.7, 60.0, 62.7]), RX)

    reference_start = OneWayRangeScaling(SPEED_OF_LIGHT_MPS)
    reference_start.update(start, np.array([0.0, 2.7]), RX)
    reference_end = OneWayRangeScaling(SPEED_OF_LIGHT_MPS)
    reference_end.update(end, np.array([60.0, 62.7]), RX)

    expected = (reference_end.scaling_factor(RX) - reference_start.scaling_factor(RX)) / dt
    assert np.allclose(scaler.scaling_factor(RX), expected)
    assert np.allclose(scaler.state_scaling(0), -reference_start.state_scaling(0) / dt)
    assert np.allclose(scaler.leg_scaling(1), reference_end.leg_scaling(0) / dt)
    for fixed in (TX, RX):
        expected_light_time = (
            reference_end.light_time_partial_scaling(fixed) - reference_start.light_time_partial_scaling(fixed)
        ) / dt
        assert scaler.light_time_partial_scaling(fixed) == pytest.approx(expected_light_time)


@pytest.mark.parametrize(
    "observable_type",
    [ObservableType.ONE_WAY_RANGE, ObservableType.DIFFERENCED_RANGE, ObservableType.ANGULAR_POSITION],
)
def test_every_scaler_provides_light_time_scaling(deep_space: Environment, observable_type) -> None:
    link_ends = LinkEnds.from_mapping({TX: LinkEndId("Probe"), RX: LinkEndId("Earth", "Madrid")})
    model = ObservationModel(observable_type, link_ends, deep_space)
    value, data = model.compute_observation_with_link_end_data(500.0).unwrap()
    scaler = create_link_end_scaling(observable_type, link_ends, model.signal_speed_mps, model.integration_time_s)
    scaler.update(data.states, data.times, RX, value)

    for fixed in (TX, RX):
        factor = np.atleast_1d(scaler.light_time_partial_scaling(fixed))
        assert factor.shape == (model.size,)
        assert np.all(np.isfinite(factor))
    with pytest.raises(IncompatibleLinkEnd):
        scaler.light_time_partial_scaling(RTX)


def test_angular_scaling_of_static_ends() -> None:
    scaler = AngularPositionScaling(SPEED_OF_LIGHT_MPS)
    scaler.update(_static_states()[::-1], np.array([0.0, 1.0]), RX)

    expected = np.array([[0.0, 1.0, 0.0], [0.0, 0.0, 1.0]]) / SPEED_OF_LIGHT_MPS
    assert np.allclose(scaler.scaling_factor(TX), expected)
    assert np.allclose(scaler.scaling_factor(RX), -expected)
    assert np.allclose(scaler.light_time_partial_scaling(), 0.0)
    assert scaler.size == 2


def test_angular_scaling_is_antisymmetric_with_motion() -> None:
    scaler = AngularPositionScaling(SPEED_OF_LIGHT_MPS)
    scaler.update(_moving_states(), np.array([0.0, 2.7]), TX)

    for fixed in (TX, RX):
        assert np.allclose(scaler.scaling_factor(TX, fixed) + scaler.scaling_factor(RX, fixed), 0.0)
    with pytest.raises(IncompatibleLinkEnd):
        scaler.scaling_factor(RTX)


def test_factory_matches_observable(deep_space: Environment) -> None:
    one_way = LinkEnds.from_mapping({TX: LinkEndId("Probe"), RX: LinkEndId("Earth", "Madrid")})
    two_way = LinkEnds.from_mapping(
        {TX: LinkEndId("Earth", "Madrid"), RTX: LinkEndId("Probe"), RX: LinkEndId("Earth", "Madrid")}
    )

    assert isinstance(create_link_end_scaling(ObservableType.ONE_WAY_RANGE, one_way, 1.0), OneWayRangeScaling)
    assert isinstance(create_link_end_scaling(ObservableType.N_WAY_RANGE, two_way, 1.0), NWayRangeScaling)
    assert isinstance(
        create_link_end_scaling(ObservableType.DIFFERENCED_RANGE, one_way, 1.0), DifferencedRangeScaling
    )
    assert isinstance(
        create_link_end_scaling(ObservableType.ANGULAR_POSITION, one_way, 1.0), AngularPositionScaling
    )

    model = ObservationModel(ObservableType.N_WAY_RANGE, two_way, deep_space)
    value, data = model.compute_observation_with_link_end_data(500.0).unwrap()
    scaler = create_link_end_scaling(ObservableType.N_WAY_RANGE, two_way, model.signal_speed_mps)
    scaler.update(data.states, data.times, RX, value)
    combined = scaler.scaling_factor(TX) + scaler.scaling_factor(RTX) + scaler.scaling_factor(RX)

    assert np.allclose(combined, 0.0, atol=1e-12)
    assert np.linalg.norm(scaler.scaling_factor(RTX)) > 1.0
