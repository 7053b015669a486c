"""Hospital what-if glucose forecasting API."""
