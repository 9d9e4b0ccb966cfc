"""Health checks for identifier generation.

Used by the debug route to confirm, on a running instance, that generated
identifiers are well formed, unique and cheap to produce.
"""

import time
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

from .identifiers import IdentifierGenerator, validate_format

VALID_SAMPLES = (
    "a1b2c3d4-e5f6-4789-a012-b3c4d5e6f789",
    "12345678-1234-4567-8901-123456789012",
    "ffffffff-ffff-4fff-bfff-ffffffffffff",
    "00000000-0000-4000-8000-000000000000",
    "550e8400-e29b-41d4-a716-446655440000",
    "A1B2C3D4-E5F6-4789-A012-B3C4D5E6F789",
)

INVALID_SAMPLES = (
    "1753374370671",  # timestamp-style id
    "not-a-uuid",
    "a1b2c3d4-e5f6-3789-a012-b3c4d5e6f789",  # version 3
    "a1b2c3d4-e5f6-4789-7012-b3c4d5e6f789",  # variant 7
    "6ba7b810-9dad-11d1-80b4-00c04fd430c8",  # version 1
    "a1b2c3d4-e5f6-4789-a012-b3c4d5e6f78",
    "a1b2c3d4-e5f6-4789-a012-b3c4d5e6f7890",
    "a1b2c3d4e5f6-4789-a012-b3c4d5e6f789",
    "g1b2c3d4-e5f6-4789-a012-b3c4d5e6f789",
    "a1b2c3d4-e5f6-4789-a012-b3c4d5e6f789-extra",
    "",
    None,
    123456789,
)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def run_generation_test(
    count: int = 1000, generator: Optional[IdentifierGenerator] = None
) -> Dict[str, Any]:
    """Generates ``count`` identifiers and reports validity, uniqueness and timing."""
    generator = generator or IdentifierGenerator()
    results: Dict[str, Any] = {
        "started_at": _now(),
        "requested": count,
        "errors": [],
    }
    generated = []
    timings = []
    invalid = 0

    started = time.perf_counter()
    for _ in range(count):
        tick = time.perf_counter()
        try:
            value = generator.generate()
        except Exception as e:
            results["errors"].append(str(e))
            continue
        timings.append((time.perf_counter() - tick) * 1_000_000)
        generated.append(value)
        if not validate_format(value).is_valid:
            invalid += 1
    elapsed = time.perf_counter() - started

    unique = len(set(generated))
    results["uniqueness"] = {
        "total": len(generated),
        "unique": unique,
        "duplicates": len(generated) - unique,
        "has_duplicates": unique != len(generated),
    }
    results["invalid"] = invalid
    results["performance"] = {
        "total_seconds": elapsed,
        "average_microseconds": sum(timings) / len(timings) if timings else 0.0,
        "min_microseconds": min(timings) if timings else 0.0,
        "max_microseconds": max(timings) if timings else 0.0,
        "per_second": round(len(generated) / elapsed) if elapsed > 0 else None,
    }
    results["identifiers"] = generated
    return results


def run_stress_test(
    iterations: int = 10,
    batch_size: int = 1000,
    generator: Optional[IdentifierGenerator] = None,
) -> Dict[str, Any]:
    """Runs repeated generation tests and checks uniqueness across all batches."""
    generator = generator or IdentifierGenerator()
    started_at = _now()
    seen = set()
    batches = []
    total_errors = 0
    total_invalid = 0

    for iteration in range(1, iterations + 1):
        batch = run_generation_test(batch_size, generator)
        seen.update(batch["identifiers"])
        total_errors += len(batch["errors"])
        total_invalid += batch["invalid"]
        batches.append(
            {
                "iteration": iteration,
                "uniqueness": batch["uniqueness"],
                "performance": batch["performance"],
                "error_count": len(batch["errors"]),
            }
        )

    total = iterations * batch_size
    return {
        "started_at": started_at,
        "iterations": iterations,
        "batch_size": batch_size,
        "total_generated": total,
        "batches": batches,
        "overall": {
            "total_unique": len(seen),
            "uniqueness_rate": len(seen) / total if total else 1.0,
            "total_errors": total_errors + total_invalid,
            "error_rate": (total_errors + total_invalid) / total if total else 0.0,
        },
    }


def validate_samples() -> Dict[str, Any]:
    """Checks the format validator against known good and bad identifiers."""
    accepted = [validate_format(value) for value in VALID_SAMPLES]
    rejected = [validate_format(value) for value in INVALID_SAMPLES]
    correct_valid = sum(1 for report in accepted if report.is_valid)
    correct_invalid = sum(1 for report in rejected if not report.is_valid)
    return {
        "valid_accepted": correct_valid,
        "valid_total": len(VALID_SAMPLES),
        "invalid_rejected": correct_invalid,
        "invalid_total": len(INVALID_SAMPLES),
        "accuracy": (correct_valid + correct_invalid)
        / (len(VALID_SAMPLES) + len(INVALID_SAMPLES)),
        "failures": [
            {"value": report.value, "errors": report.errors}
            for report in accepted
            if not report.is_valid
        ]
        + [
            {"value": report.value, "errors": ["accepted but should be rejected"]}
            for report in rejected
            if report.is_valid
        ],
    }


def overall_health(
    generation: Dict[str, Any], validation: Dict[str, Any], stress: Dict[str, Any]
) -> str:
    """Summarises the three checks as HEALTHY, DEGRADED or UNHEALTHY."""
    generation_ok = (
        not generation["uniqueness"]["has_duplicates"]
        and generation["invalid"] == 0
        and not generation["errors"]
    )
    validation_ok = validation["accuracy"] == 1.0
    stress_ok = (
        stress["overall"]["uniqueness_rate"] > 0.99
        and stress["overall"]["error_rate"] < 0.01
    )
    if generation_ok and validation_ok and stress_ok:
        return "HEALTHY"
    if generation_ok and validation_ok:
        return "DEGRADED"
    return "UNHEALTHY"


def run_comprehensive_test(
    count: int = 100, generator: Optional[IdentifierGenerator] = None
) -> Dict[str, Any]:
    """Runs every check and returns a combined report without the raw identifiers."""
    generator = generator or IdentifierGenerator()
    generation = run_generation_test(count, generator)
    validation = validate_samples()
    stress = run_stress_test(iterations=5, batch_size=count, generator=generator)
    health = overall_health(generation, validation, stress)
    generation.pop("identifiers")
    return {
        "completed_at": _now(),
        "generation": generation,
        "validation": validation,
        "stress": stress,
        "health": health,
    }


def monitor_generation(
    duration: float = 60.0,
    interval: float = 1.0,
    sample_size: int = 10,
    generator: Optional[IdentifierGenerator] = None,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], None] = time.sleep,
) -> Dict[str, Any]:
    """Samples ``sample_size`` identifiers every ``interval`` seconds.

    Blocks for ``duration`` seconds as measured by ``clock``. Each sample records
    per-identifier timings and whether every identifier in it was valid.
    """
    generator = generator or IdentifierGenerator()
    results: Dict[str, Any] = {
        "started_at": _now(),
        "duration": duration,
        "interval": interval,
        "samples": [],
    }
    deadline = clock() + duration

    while clock() < deadline:
        sample: Dict[str, Any] = {
            "timestamp": _now(),
            "count": sample_size,
            "timings_microseconds": [],
            "all_valid": True,
            "errors": 0,
        }
        sample_started = time.perf_counter()
        for _ in range(sample_size):
            tick = time.perf_counter()
            try:
                value = generator.generate()
            except Exception:
                sample["errors"] += 1
                sample["all_valid"] = False
                continue
            elapsed = (time.perf_counter() - tick) * 1_000_000
            sample["timings_microseconds"].append(elapsed)
            if not validate_format(value).is_valid:
                sample["all_valid"] = False
        sample["total_microseconds"] = (
            time.perf_counter() - sample_started
        ) * 1_000_000
        results["samples"].append(sample)
        sleep(interval)

    timings = [
        timing
        for sample in results["samples"]
        for timing in sample["timings_microseconds"]
    ]
    results["summary"] = {
        "total_samples": len(results["samples"]),
        "total_generated": len(timings),
        "all_valid": all(sample["all_valid"] for sample in results["samples"]),
        "total_errors": sum(sample["errors"] for sample in results["samples"]),
        "average_microseconds": sum(timings) / len(timings) if timings else 0.0,
        "min_microseconds": min(timings) if timings else 0.0,
        "max_microseconds": max(timings) if timings else 0.0,
        "completed_at": _now(),
    }
    return results
