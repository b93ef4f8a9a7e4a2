from .loader import ScenarioFileError, load_scenario, parse_scenario
