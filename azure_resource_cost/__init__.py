"""Cost, forecast and retail price reporting for Azure resources."""
