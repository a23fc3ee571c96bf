"""Iterative batch weighted least-squares estimation."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping

import numpy as np

from tracking_od.config import EstimationConfig
from tracking_od.environment.bodies import Environment
from tracking_od.errors import EstimationDegenerate
from tracking_od.estimation.parameters import ParameterSet
from tracking_od.estimation.state_machine import EstimationState, EstimationStateMachine
from tracking_od.estimation.statistics import (
    ChiSquareResult,
    chi_square_test,
    correlation_matrix,
    formal_errors,
    weighted_rms,
)
from tracking_od.models import LinkEnds, ObservableType, ObservationCollection, Propagator
from tracking_od.observations.models import ObservationModel
from tracking_od.partials.observation import ObservationPartial, create_observation_partials
from tracking_od.partials.scaling import LinkEndScaling, create_link_end_scaling
from tracking_od.utils.logging import get_logger

LOGGER = get_logger(__name__)

ModelKey = tuple[ObservableType, LinkEnds]


@dataclass(frozen=True)
class IterationRecord:
    """One linearization pass; ``parameters`` are the values it was computed with."""

    iteration: int
    parameters: np.ndarray
    correction: np.ndarray | None
    residuals: np.ndarray
    valid: np.ndarray
    rms: float
    condition_number: float


@dataclass
class EstimationOutput:
    parameters: np.ndarray
    parameter_labels: list[str]
    status: EstimationState
    iterations: list[IterationRecord] = field(default_factory=list)
    covariance: np.ndarray | None = None
    error: EstimationDegenerate | None = None
    chi_square: ChiSquareResult | None = None
    design_matrix: np.ndarray | None = None

    @property
    def converged(self) -> bool:
        return self.status == EstimationState.CONVERGED

    @property
    def valid(self) -> np.ndarray:
        """Per-epoch validity flags of the last linearization."""

        if not self.iterations:
            return np.zeros(0, dtype=bool)
        return self.iterations[-1].valid

    @property
    def residuals(self) -> np.ndarray:
        if not self.iterations:
            return np.zeros(0)
        return self.iterations[-1].residuals

    @property
    def parameter_history(self) -> np.ndarray:
        return np.array([record.parameters for record in self.iterations])

    @property
    def residual_history(self) -> np.ndarray:
        return np.array([record.residuals for record in self.iterations])

    @property
    def rms_history(self) -> np.ndarray:
        return np.array([record.rms for record in self.iterations])

    @property
    def formal_errors(self) -> np.ndarray | None:
        return None if self.covariance is None else formal_errors(self.covariance)

    @property
    def correlations(self) -> np.ndarray | None:
        return None if self.covariance is None else correlation_matrix(self.covariance)


@dataclass
class _Linearization:
    residuals: np.ndarray
    design: np.ndarray
    sigmas: np.ndarray
    valid: np.ndarray
    row_mask: np.ndarray


class EstimationManager:
    """Batch least squares over an observation collection.

    Each iteration re-propagates with the current parameter values,
    recomputes every observation and its partials, and solves the weighted
    normal equations for a parameter correction. Epochs whose observation
    cannot be computed are excluded from that iteration. Singular normal
    equations end the run with ``EstimationDegenerate`` on the output.
    """

    def __init__(
        self,
        parameters: ParameterSet,
        models: Mapping[ModelKey, ObservationModel] | list[ObservationModel],
        environment: Environment,
        propagator: Propagator | None = None,
        config: EstimationConfig | None = None,
    ) -> None:
        if not isinstance(models, Mapping):
            models = {(model.observable_type, model.link_ends): model for model in models}
        self.parameters = parameters
        self.models: dict[ModelKey, ObservationModel] = dict(models)
        self.environment = environment
        self.propagator = propagator
        self.config = config or EstimationConfig()
        self.state_machine = EstimationStateMachine()
        self._stop_requested = False

        specs = [(parameter.id, parameter.size) for parameter in parameters]
        self.scalers: dict[ModelKey, LinkEndScaling] = {}
        self.partials: dict[ModelKey, list[ObservationPartial]] = {}
        for key, model in self.models.items():
            scaler = create_link_end_scaling(
                model.observable_type, model.link_ends, model.signal_speed_mps, model.integration_time_s
            )
            self.scalers[key] = scaler
            self.partials[key] = create_observation_partials(model, scaler, specs, environment)

    def request_stop(self) -> None:
        """Stop after the current iteration completes."""

        self._stop_requested = True

    def _sigma(self, record, sigmas: Mapping[ObservableType, float] | None) -> float:
        if record.sigma is not None:
            return float(record.sigma)
        if sigmas is not None and record.observable_type in sigmas:
            return float(sigmas[record.observable_type])
        return float(self.config.default_sigma[record.observable_type])

    def _linearize(
        self,
        observations: ObservationCollection,
        sigmas: Mapping[ObservableType, float] | None,
    ) -> _Linearization:
        n_params = self.parameters.total_size
        residuals = []
        rows = []
        row_sigmas = []
        row_mask = []
        valid = np.zeros(len(observations), dtype=bool)
        for idx, record in enumerate(observations):
            key = (record.observable_type, record.link_ends)
            model = self.models[key]
            outcome = model.compute_observation_with_link_end_data(record.t, record.anchor)
            size = record.observable_type.size
            if not outcome.ok:
                LOGGER.warning("Excluding epoch %d (t=%s): %s", idx, record.t, outcome.error)
                residuals.append(np.full(size, np.nan))
                row_mask.extend([False] * size)
                continue
            computed, data = outcome.value
            residual = np.atleast_1d(record.observed) - computed
            if record.observable_type is ObservableType.ANGULAR_POSITION:
                residual[0] = (residual[0] + np.pi) % (2.0 * np.pi) - np.pi

            scaler = self.scalers[key]
            scaler.update(data.states, data.times, record.anchor, computed)
            block = np.zeros((size, n_params))
            for partial, part in zip(self.partials[key], self.parameters.slices().values()):
                block[:, part] = partial.total(data, record.anchor, record.t)

            valid[idx] = True
            residuals.append(residual)
            rows.append(block)
            row_sigmas.extend([self._sigma(record, sigmas)] * size)
            row_mask.extend([True] * size)

        design = np.vstack(rows) if rows else np.zeros((0, n_params))
        return _Linearization(
            residuals=np.concatenate(residuals) if residuals else np.zeros(0),
            design=design,
            sigmas=np.array(row_sigmas, dtype=float),
            valid=valid,
            row_mask=np.array(row_mask, dtype=bool),
        )

    def _solve(
        self, lin: _Linearization, apriori_inverse: np.ndarray | None
    ) -> tuple[np.ndarray, np.ndarray, float]:
        """Normalized normal-equation solve; returns (correction, covariance, condition)."""

        n_params = self.parameters.total_size
        design = lin.design
        weights = 1.0 / lin.sigmas**2
        residuals = lin.residuals[lin.row_mask]

        scale = np.ones(n_params)
        if self.config.normalize_partials:
            norms = np.linalg.norm(design, axis=0)
            scale = np.where(norms > 0.0, norms, 1.0)
        design_n = design / scale

        normal = design_n.T @ (weights[:, None] * design_n)
        if apriori_inverse is not None:
            normal = normal + apriori_inverse / np.outer(scale, scale)
        rhs = design_n.T @ (weights * residuals)

        condition = float(np.linalg.cond(normal)) if n_params else float("inf")
        if not np.isfinite(condition) or condition > self.config.condition_number_limit:
            raise EstimationDegenerate(
                f"Normal equations are singular (condition number {condition:.3e})",
                condition_number=condition,
            )
        try:
            correction_n = np.linalg.solve(normal, rhs)
            covariance_n = np.linalg.inv(normal)
        except np.linalg.LinAlgError as exc:
            raise EstimationDegenerate(str(exc), condition_number=condition) from exc
        correction = correction_n / scale
        covariance = covariance_n / np.outer(scale, scale)
        return correction, covariance, condition

    def estimate(
        self,
        observations: ObservationCollection,
        apriori_covariance: np.ndarray | None = None,
        sigmas: Mapping[ObservableType, float] | None = None,
    ) -> EstimationOutput:
        self.state_machine.reset()
        output = EstimationOutput(
            parameters=self.parameters.get_values(),
            parameter_labels=self.parameters.labels(),
            status=EstimationState.INITIALIZE,
        )
        try:
            self._iterate(observations, apriori_covariance, sigmas, output)
        finally:
            self._stop_requested = False

        output.parameters = self.parameters.get_values()
        if self.propagator is not None and output.status != EstimationState.DEGENERATE:
            self.propagator.propagate()
        return output

    def _apriori_inverse(self, apriori_covariance: np.ndarray | None) -> np.ndarray | None:
        if apriori_covariance is None:
            return None
        try:
            return np.linalg.inv(apriori_covariance)
        except np.linalg.LinAlgError as exc:
            raise EstimationDegenerate(f"A-priori covariance is singular: {exc}") from exc

    def _iterate(
        self,
        observations: ObservationCollection,
        apriori_covariance: np.ndarray | None,
        sigmas: Mapping[ObservableType, float] | None,
        output: EstimationOutput,
    ) -> None:
        try:
            apriori_inverse = self._apriori_inverse(apriori_covariance)
        except EstimationDegenerate as exc:
            output.error = exc
            output.status = self.state_machine.advance(EstimationState.DEGENERATE)
            LOGGER.warning("Estimation not started: %s", exc)
            return
        previous_rms = None

        for iteration in range(1, self.config.max_iterations + 1):
            snapshot = self.parameters.get_values()

            self.state_machine.advance(EstimationState.PROPAGATE_AND_SIMULATE)
            if self.propagator is not None:
                self.propagator.propagate()

            self.state_machine.advance(EstimationState.LINEARIZE)
            lin = self._linearize(observations, sigmas)
            normalized = lin.residuals[lin.row_mask] / lin.sigmas
            rms = weighted_rms(normalized)

            if not lin.valid.any():
                error = EstimationDegenerate("No valid observation epochs")
                output.iterations.append(
                    IterationRecord(iteration, snapshot, None, lin.residuals, lin.valid, rms, float("inf"))
                )
                output.error = error
                output.status = self.state_machine.advance(EstimationState.DEGENERATE)
                LOGGER.warning("Estimation stopped: %s", error)
                return

            self.state_machine.advance(EstimationState.SOLVE)
            try:
                correction, covariance, condition = self._solve(lin, apriori_inverse)
            except EstimationDegenerate as exc:
                output.iterations.append(
                    IterationRecord(iteration, snapshot, None, lin.residuals, lin.valid, rms, exc.condition_number)
                )
                output.error = exc
                output.design_matrix = lin.design
                output.status = self.state_machine.advance(EstimationState.DEGENERATE)
                LOGGER.warning("Estimation stopped at iteration %d: %s", iteration, exc)
                return

            self.parameters.set_values(snapshot + correction)
            output.iterations.append(
                IterationRecord(iteration, snapshot, correction, lin.residuals, lin.valid, rms, condition)
            )
            output.covariance = covariance
            output.design_matrix = lin.design
            post_fit = (lin.residuals[lin.row_mask] - lin.design @ correction) / lin.sigmas
            output.chi_square = chi_square_test(post_fit, self.parameters.total_size, self.config.chi_square_alpha)

            relative_correction = float(np.linalg.norm(correction) / max(np.linalg.norm(snapshot), 1.0))
            LOGGER.info(
                "iteration %d: rms=%.6g valid=%d/%d correction=%.3e",
                iteration,
                rms,
                int(lin.valid.sum()),
                lin.valid.size,
                relative_correction,
            )

            rms_converged = previous_rms is not None and abs(previous_rms - rms) <= self.config.rms_tolerance * max(
                previous_rms, 1e-300
            )
            previous_rms = rms
            if relative_correction < self.config.convergence_tolerance or rms_converged:
                output.status = self.state_machine.advance(EstimationState.CONVERGED)
                return
            if self._stop_requested:
                output.status = self.state_machine.advance(EstimationState.STOPPED)
                return
            if iteration == self.config.max_iterations:
                output.status = self.state_machine.advance(EstimationState.MAX_ITERATIONS)
                return
            self.state_machine.advance(EstimationState.ITERATE)
