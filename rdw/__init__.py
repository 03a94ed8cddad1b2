"""
Redirected Walking Simulation
=============================
Real-time redirection control loop for VR locomotion in a bounded
tracking area, with a grid reinforcement-learning environment on top.

Physical motion stays inside the room while virtual motion appears
unconstrained.
"""

__version__ = "0.1.0"
__author__ = "RDW Development Team"
