"""
Deployment lifecycle orchestrator for Kubernetes workloads.
"""
