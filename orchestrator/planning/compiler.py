from typing import Any, Dict, Optional

from .types import ExecutionPlan, StepResults

_ECO_FIELDS = ("trainCO2", "carCO2", "planeCO2", "savings")


def _data(results: StepResults, step_id: str) -> Any:
    result = results.get(step_id)
    if result is None or result.skipped or not result.success:
        return None
    return result.data


def _leg_place(leg: Any, end: str) -> Optional[Dict[str, Any]]:
    if not isinstance(leg, dict):
        return None
    place = (leg.get(end) or {}).get("place") or {}
    return {"name": place["name"]} if place.get("name") else None


def compile_plan_summary(plan: ExecutionPlan, results: StepResults) -> Dict[str, Any]:
    """Fold raw step outputs into the summary the formatter and the cards read."""
    summary: Dict[str, Any] = {"planName": plan.name, "description": plan.description}

    trips = _data(results, "find-trips")
    eco = _data(results, "eco-comparison")
    if isinstance(trips, list) and trips and isinstance(trips[0], dict) and isinstance(eco, dict):
        trips = [
            {
                **trips[0],
                **{key: eco.get(key) for key in _ECO_FIELDS},
                "co2Savings": eco.get("savings"),
                "comparedTo": "plane" if eco.get("planeCO2") else "car" if eco.get("carCO2") else None,
            },
            *trips[1:],
        ]
    summary["trips"] = trips
    summary["ecoComparison"] = eco

    if isinstance(trips, list) and trips and isinstance(trips[0], dict):
        legs = trips[0].get("legs") or []
        if legs:
            summary["origin"] = _leg_place(legs[0], "start")
            summary["destination"] = _leg_place(legs[-1], "end")

    stations = _data(results, "find-station")
    station = stations[0] if isinstance(stations, list) and stations and isinstance(stations[0], dict) else None
    events = _data(results, "get-events")
    if isinstance(events, dict) and station and station.get("name"):
        events = {**events, "stationName": station["name"], "stationId": station.get("id")}
    summary["station"] = station
    summary["events"] = events if isinstance(events, dict) else None

    weather = _data(results, "get-weather")
    if weather is not None:
        summary["weather"] = weather
    formation = _data(results, "get-formation")
    if formation is not None:
        summary["formation"] = formation

    return summary
