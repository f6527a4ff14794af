"""
Centroidal Non-linear MPC
=========================

Receding-horizon centroidal controller for legged robots with online
contact location adjustment.
"""

__version__ = "0.1.0"
