"""
Dealbuster

A classroom demonstration contrasting a centralized vote-and-delay deal
aggregator with a decentralized consensus-verification one, both driving
personalized price alerts over a live event feed.
"""

__version__ = "0.1.0"
__author__ = "Dealbuster Team"
