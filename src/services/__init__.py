"""Business services: subscription gate, search, interactions, catalog"""
from .interaction_service import InteractionService

__all__ = ['InteractionService']
