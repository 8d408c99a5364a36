from __future__ import annotations

import os
from typing import Any, Dict, Tuple

from flask import Flask, Response, jsonify, request

from ..engine import CashFlowEngine, to_csv
from ..errors import BatchFailure, ConfigurationError, RunInProgressError, ValidationError
from ..montecarlo import MonteCarloConfig, MonteCarloSimulator, available_models
from ..scenario import Scenario


app = Flask(__name__)


def _error(message: str, status: int, **extra: Any) -> Tuple[Any, int]:
    body: Dict[str, Any] = {"success": False, "error": message}
    body.update(extra)
    return jsonify(body), status


def _json_payload() -> Tuple[Dict[str, Any] | None, Tuple[Any, int] | None]:
    payload = request.get_json(silent=True)
    if payload is None:
        return None, _error("Request JSON body is required", 400)
    if not isinstance(payload, dict):
        return None, _error("Request JSON body must be an object", 400)
    return payload, None


def _scenario_payload(payload: Dict[str, Any]) -> Dict[str, Any]:
    # Accept either {"scenario": {...}} or the scenario itself
    scenario = payload.get("scenario", payload)
    return scenario if isinstance(scenario, dict) else {}


@app.errorhandler(ValidationError)
def handle_validation_error(exc: ValidationError) -> Tuple[Any, int]:
    app.logger.info(f"Rejected scenario: {exc}")
    return _error(str(exc), 400, field=exc.field_path)


@app.errorhandler(ConfigurationError)
def handle_configuration_error(exc: ConfigurationError) -> Tuple[Any, int]:
    app.logger.info(f"Rejected configuration: {exc}")
    return _error(str(exc), 400)


@app.errorhandler(BatchFailure)
def handle_batch_failure(exc: BatchFailure) -> Tuple[Any, int]:
    app.logger.error(f"Monte Carlo run failed: {exc}")
    partial = exc.partial.to_dict() if exc.partial is not None else None
    return _error(str(exc), 500, partial=partial)


@app.errorhandler(RunInProgressError)
def handle_run_in_progress(exc: RunInProgressError) -> Tuple[Any, int]:
    return _error(str(exc), 409)


@app.get("/health")
def health() -> Tuple[Any, int]:
    return jsonify({"ok": True, "service": "retire-model-api"}), 200


@app.get("/retire/api/v1/models")
def models() -> Tuple[Any, int]:
    return jsonify({"success": True, "models": available_models()}), 200


@app.post("/retire/api/v1/simulate")
def simulate() -> Tuple[Any, int]:
    payload, error = _json_payload()
    if error is not None:
        return error
    scenario = Scenario.from_dict(_scenario_payload(payload))
    result = CashFlowEngine().simulate(scenario)
    return jsonify({
        "success": True,
        "scenario": scenario.scenario_id,
        "summary": {
            "final_balance": round(result.final_balance(), 2),
            "shortfall_months": result.shortfall_months(),
            "total_withdrawals": round(result.total_withdrawals(), 2),
            "actual_duration": result.actual_duration,
        },
        "results": result.to_dict(),
    }), 200


@app.post("/retire/api/v1/simulate/csv")
def simulate_csv() -> Any:
    payload, error = _json_payload()
    if error is not None:
        return error
    scenario = Scenario.from_dict(_scenario_payload(payload))
    result = CashFlowEngine().simulate(scenario)
    csv_text = to_csv(result, start_date=payload.get("start_date"))
    filename = f"{scenario.scenario_id}.csv".replace(" ", "_")
    return Response(csv_text, mimetype="text/csv",
                    headers={"Content-Disposition": f"attachment; filename={filename}"})


@app.post("/retire/api/v1/montecarlo")
def montecarlo() -> Tuple[Any, int]:
    payload, error = _json_payload()
    if error is not None:
        return error
    config = MonteCarloConfig.from_dict(payload.get("config"))
    scenario = Scenario.from_dict(_scenario_payload(payload))
    include_ledgers = bool(payload.get("include_ledgers", False))
    analysis = MonteCarloSimulator(config).run(scenario)
    body = {"success": True}
    body.update(analysis.to_dict(include_ledgers=include_ledgers))
    return jsonify(body), 200


if __name__ == "__main__":
    port = int(os.getenv("PORT", "8001"))
    app.run(host="0.0.0.0", port=port, debug=False)
