"""
Phenotype Package

The neural network that maps input vectors to output vectors, the dataset
that feeds its training, and its JSON persistence.

Exported Classes:
    Layer:              Width plus shared activation
    FeedForwardNetwork: Layered network with forward pass, backprop and SGD
    Sample:             One (x, y) pair
    DataSet:            Shuffling and batching of samples

Exported Functions:
    network_to_dict, network_from_dict, save_network, load_network
"""

from evolearn.phenotype.dataset       import DataSet, Sample
from evolearn.phenotype.network       import FeedForwardNetwork, Layer
from evolearn.phenotype.serialization import (
    network_to_dict,
    network_from_dict,
    save_network,
    load_network
)

__all__ = ['Layer',
           'FeedForwardNetwork',
           'Sample',
           'DataSet',
           'network_to_dict',
           'network_from_dict',
           'save_network',
           'load_network']
