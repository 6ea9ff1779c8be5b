"""
Ecosim Food Chain Simulation

A discrete-time predator-prey ecosystem on a 2-D grid. Producers
photosynthesize and are grazed by herbivores, which carnivores hunt.

Architecture: the Ecosystem is the source of truth. Renderers and charts
are consumers that read snapshots and listen to the SimulationEngine.
"""

__version__ = "0.1.0"
