#!/usr/bin/env python3
"""
Basic usage examples for Variantly.

Runs an experiment end to end: assignment, a few analytics events, and the
conversion report.
"""

from variantly import Experiment, Experiments, Variant
from variantly.analytics import Analytics
from variantly.core.runtime import Runtime
from variantly.storage import MemoryStorage
from variantly.utils import setup_logging


def track_checkout(event, experiment):
    """Count cart additions and finish the experiment on checkout."""
    if event.name == "add_to_cart":
        experiment.set_state({"cart_adds": experiment.state["cart_adds"] + 1})
    elif event.name == "checkout":
        experiment.set_state({"revenue": event.properties.get("total", 0)})
        experiment.complete()


def print_report(name, properties):
    if name.startswith("experiment_"):
        print(f"  -> {name}: {properties}")


def main():
    setup_logging(level="INFO")

    print("\n=== Checkout Button Experiment ===\n")

    analytics = Analytics()
    analytics.on("track", print_report)

    runtime = Runtime(local_storage=MemoryStorage())
    experiments = Experiments(
        {
            "checkout_button": Experiment(
                name="checkout_button_color",
                variants=[
                    Variant("green", 0.5, "#2e7d32"),
                    Variant("orange", 0.5, "#ef6c00"),
                ],
                initial_state=lambda: {"cart_adds": 0},
                track=track_checkout,
            ),
        },
        analytics=analytics,
        runtime=runtime,
    )

    color = experiments.get_current_value_for("checkout_button", "#000000")
    print(f"Button color: {color}")
    print(f"All colors: {experiments.get_all_values_for('checkout_button')}")

    analytics.track("add_to_cart", {"sku": "A-1"})
    analytics.track("add_to_cart", {"sku": "B-2"})
    analytics.track("checkout", {"total": 59.90})

    # Same assignment on every later read
    assert experiments.get_current_value_for("checkout_button", "#000000") == color
    print(f"Persisted: {experiments.assignments}")

    experiments.detach()


if __name__ == "__main__":
    main()
