"""
Network Persistence Module

Save and restore a FeedForwardNetwork as JSON. A snapshot holds everything
needed to rebuild the network: the layer widths, the activation name of each
layer, the initialization distribution used for future topology edits, and
the flat parameter vector (all weights, then all biases).

Functions:
    network_to_dict:   Snapshot a network as a JSON-compatible dictionary
    network_from_dict: Rebuild a network from a snapshot
    save_network:      Write a snapshot to a JSON file
    load_network:      Read a snapshot from a JSON file
"""

import json
from pathlib import Path
from typing  import Optional, Union

from evolearn.phenotype.network   import FeedForwardNetwork
from evolearn.utils.errors        import InvalidConfiguration
from evolearn.utils.random_source import RandomSource

FORMAT_VERSION = 1


def network_to_dict(network: FeedForwardNetwork) -> dict:
    return {
        "format_version" : FORMAT_VERSION,
        "layer_widths"   : network.layer_widths,
        "activations"    : network.activation_names,
        "distribution"   : network.distribution.value,
        "init_params"    : list(network.init_params),
        "parameters"     : network.get_parameters().flat().tolist()
    }


def network_from_dict(snapshot: dict, rng: Optional[RandomSource] = None) -> FeedForwardNetwork:
    """
    Rebuild a network from a snapshot made by network_to_dict().

    Parameters:
        snapshot: The snapshot dictionary
        rng:      Random source of the rebuilt network (used by later topology edits)

    Returns:
        The rebuilt network
    """
    try:
        widths      = snapshot["layer_widths"]
        activations = snapshot["activations"]
        parameters  = snapshot["parameters"]
    except KeyError as e:
        raise InvalidConfiguration(f"Network snapshot is missing '{e.args[0]}'")

    if snapshot.get("format_version", FORMAT_VERSION) != FORMAT_VERSION:
        raise InvalidConfiguration(f"Unsupported network snapshot version {snapshot['format_version']}")
    if len(widths) < 2 or len(widths) != len(activations):
        raise InvalidConfiguration(f"Snapshot needs at least two layers and one activation per layer, "
                                   f"got {len(widths)} widths and {len(activations)} activations")

    network = FeedForwardNetwork(num_inputs        = widths[0],
                                 num_outputs       = widths[-1],
                                 hidden_layers     = widths[1:-1],
                                 output_activation = activations[-1],
                                 distribution      = snapshot.get("distribution", "gaussian"),
                                 init_params       = tuple(snapshot.get("init_params", (0.0, 1.0))),
                                 rng               = rng)
    for i, name in enumerate(activations[1:-1], start=1):
        network.set_layer_activation(i, name)
    network.set_parameters(parameters)
    return network


def save_network(network: FeedForwardNetwork, path: Union[str, Path]) -> str:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(network_to_dict(network), indent=2))
    return str(path)


def load_network(path: Union[str, Path], rng: Optional[RandomSource] = None) -> FeedForwardNetwork:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Network file not found: {path}")
    return network_from_dict(json.loads(path.read_text()), rng)
