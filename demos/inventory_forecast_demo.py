"""
Demonstration of the clinic inventory forecast agent.

Generates a synthetic clinic inventory, forecasts every drug profile, and
prints the at-risk ranking and the summary figures.
"""

import logging
from datetime import date

from agents.forecasting import InventoryForecastAgent
from config.config import load_forecast_config
from utils.data_generation import generate_synthetic_clinic_data

# Configure logging
logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
logger = logging.getLogger(__name__)


def demo_inventory_forecast(as_of: date = date(2024, 3, 1)):
    """Forecast the synthetic clinic inventory and log the at-risk drugs."""
    logger.info("\n--- Starting Inventory Forecast Demo ---")
    batches, movements = generate_synthetic_clinic_data(start_date_str="2024-01-01", num_days=60)
    logger.info(f"Generated {len(batches)} batches and {len(movements)} stock movements.")

    config = load_forecast_config()
    agent = InventoryForecastAgent(config)
    forecasts = agent.forecast_all(batches, movements, as_of=as_of)

    for forecast in forecasts:
        mode = "fallback" if forecast.is_fallback else "reservoir"
        logger.info(
            f"{forecast.generic_name} ({forecast.brand_name}) {forecast.strength}: "
            f"stock={forecast.current_stock}, reorder_point={forecast.reorder_point}, "
            f"risk={forecast.risk_level.value}, confidence={forecast.model_confidence:.0f}% [{mode}]"
        )

    logger.info("\n--- Drugs needing attention ---")
    for entry in agent.rank_at_risk(forecasts, batches, as_of=as_of):
        restock = entry.forecast.next_restock_date or "not within horizon"
        logger.info(
            f"score={entry.risk_score:3d} {entry.forecast.generic_name}: reorder by {restock}"
        )

    summary = agent.summarize(forecasts)
    logger.info(
        f"Monitoring {summary.monitored} drugs, average confidence "
        f"{summary.average_confidence:.0f}%, {summary.critical_count} critical or high risk."
    )
    if summary.days_until_better_accuracy is not None:
        logger.info(f"Accuracy should improve in about {summary.days_until_better_accuracy} days.")

    if forecasts:
        logger.info(f"\nFirst week for {forecasts[0].generic_name}:\n{forecasts[0].to_dataframe().head(7)}")
    logger.info("\n--- Inventory Forecast Demo Complete ---")
    return forecasts


if __name__ == "__main__":
    demo_inventory_forecast()
