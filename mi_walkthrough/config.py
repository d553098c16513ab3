from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
PACKAGE_DIR = Path(__file__).resolve().parent

DATA_DIR = PACKAGE_DIR / "datasets"
NHANES_FILE = DATA_DIR / "nhanes.csv"

OUTPUTS_DIR = PROJECT_ROOT / "outputs"
FIGURES_DIR = OUTPUTS_DIR / "figures"
TABLES_DIR = OUTPUTS_DIR / "tables"
MODELS_DIR = OUTPUTS_DIR / "models"
LOGS_DIR = OUTPUTS_DIR / "logs"

NHANES_COLUMNS = ["age", "bmi", "hyp", "chl"]

# Imputation defaults (walkthrough scale: 25 rows, so small m and maxit are enough)
N_IMPUTATIONS = 5
MAXIT = 5
DONORS = 5
RANDOM_SEED = 2026

# Labels accepted in the method vector. "" means: do not impute this column.
SUPPORTED_METHODS = ("pmm", "mean", "")

# Logged-event checks
CONSTANT_THRESHOLD = 0.999
COLLINEARITY_THRESHOLD = 0.999

# quickpred defaults
QUICKPRED_MINCOR = 0.1
QUICKPRED_MINPUC = 0.0

# Analysis model fitted to every completed dataset before pooling
ANALYSIS_FORMULA = "chl ~ age + bmi"
CONF_LEVEL = 0.95
