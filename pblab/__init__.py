"""
PBLab - Evaluación estrictamente individual para aprendizaje basado en proyectos
"""
__version__ = "1.0.0"
