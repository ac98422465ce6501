"""
Algorithms operating on the state containers.

- labor.py → allocation, release, re-evaluation, staffing
- population.py → happiness, migration, promotions, growth, training
- pricing.py → price fluctuation, inflation, services, local events
- consumption.py → population demand and services
- trade.py → player buy/sell
- taxation.py → monthly tax
"""
