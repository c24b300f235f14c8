"""
Locating and activating the "Adicionar Órgão Julgador" control on the PJe
Angular Material form.
"""
