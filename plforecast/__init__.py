"""P&L forecasting for coached businesses."""
