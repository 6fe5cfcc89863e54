"""Shared configuration and logging for the workflow editor packages"""
