"""Prompt templates for the audit agent."""
