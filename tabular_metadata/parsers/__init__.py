from .bim_parser import detect_input_type, load_database, unwrap_database
