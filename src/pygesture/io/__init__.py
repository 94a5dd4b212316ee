from ._config_utils import load_simple_config, save_simple_config, load_config_file
from ._model_store import ModelStore, DEFAULT_SLOT
from ._export import export_training_stats
