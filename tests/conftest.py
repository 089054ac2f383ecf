# tests/conftest.py

import matplotlib

# headless rendering for chart tests
matplotlib.use("Agg")
