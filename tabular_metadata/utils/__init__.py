from .export import model_to_dict, write_model
from .settings import ExtractorSettings, load_settings, save_settings
