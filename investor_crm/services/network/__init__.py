"""
Network Service
"""
from investor_crm.services.network.service import get_network_graph, get_network_overview, get_best_intro_path

__all__ = ["get_network_graph", "get_network_overview", "get_best_intro_path"]
