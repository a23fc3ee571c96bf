"""Link-end scaling and observation partials."""

from tracking_od.partials.numerical import numerical_partial
from tracking_od.partials.observation import ObservationPartial, create_observation_partials
from tracking_od.partials.position import (
    GravitationalParameterPositionPartial,
    InitialStatePositionPartial,
    PositionPartial,
    StationPositionPartial,
    create_position_partial,
)
from tracking_od.partials.scaling import (
    AngularPositionScaling,
    DifferencedRangeScaling,
    LinkEndScaling,
    NWayRangeScaling,
    OneWayRangeScaling,
    create_link_end_scaling,
)

__all__ = [
    "AngularPositionScaling",
    "DifferencedRangeScaling",
    "GravitationalParameterPositionPartial",
    "InitialStatePositionPartial",
    "LinkEndScaling",
    "NWayRangeScaling",
    "ObservationPartial",
    "OneWayRangeScaling",
    "PositionPartial",
    "StationPositionPartial",
    "create_link_end_scaling",
    "create_observation_partials",
    "create_position_partial",
    "numerical_partial",
]
