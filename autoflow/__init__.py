"""Autoflow: workflow automation engine for the customer-engagement dashboard."""
