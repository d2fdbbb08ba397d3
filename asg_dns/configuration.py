# Copyright 2016 The Johns Hopkins University Applied Physics Laboratory
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#    http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Configuration for the DNS reconciliation.

The reconciliation runs as one of three flavors, matching the three ways the
handler has been deployed:

    legacy: Region, domain and hosted zone are fixed in the configuration.
            An ASG without running instances is an error.
    sns: Domain and hosted zone come from the ASG tags.
         An ASG without running instances is an error.
    eventbridge: Domain and hosted zone come from the ASG tags and the region
                 comes from the event. An ASG without running instances is
                 valid and stale records are deleted.

Any of the flavor values can be overridden individually. Values are read from
(lowest to highest precedence) the flavor, a YAML file named by ASG_DNS_CONFIG,
and ASG_DNS_<KEY> environment variables.
"""

import os
import sys
import logging
from argparse import ArgumentParser
from collections import namedtuple
from pprint import pformat

import yaml

from . import constants as const
from .exceptions import ConfigurationError

LOGGER = logging.getLogger(__name__)

ENV_PREFIX = 'ASG_DNS_'
CONFIG_ENV = 'ASG_DNS_CONFIG'

ReconciliationPolicy = namedtuple('ReconciliationPolicy', [
    'allow_empty_membership',
    'detect_deletions',
    'region',     # None means the region is taken from the event
    'domain',     # None means the domain is taken from the DOMAIN_TAG tag
    'zone_id',    # None means the zone id is taken from the ZONE_ID_TAG tag
    'ttl',
    'role_tag',
    'domain_tag',
    'zone_id_tag',
])

FLAVORS = {
    'legacy': {
        'ALLOW_EMPTY_MEMBERSHIP': False,
        'DETECT_DELETIONS': False,
    },
    'sns': {
        'ALLOW_EMPTY_MEMBERSHIP': False,
        'DETECT_DELETIONS': False,
    },
    'eventbridge': {
        'ALLOW_EMPTY_MEMBERSHIP': True,
        'DETECT_DELETIONS': True,
    },
}

FLAVOR_REQUIRED_KEYS = {
    'legacy': ('REGION', 'DOMAIN', 'ZONE_ID'),
}

TRUE_VALUES = ('true', 'yes', 'on', '1')
FALSE_VALUES = ('false', 'no', 'off', '0')

def parse_bool(key, value):
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value != 0

    value_ = str(value).strip().lower()
    if value_ in TRUE_VALUES:
        return True
    elif value_ in FALSE_VALUES:
        return False
    else:
        raise ConfigurationError("Variable '{}' is not a boolean: '{}'".format(key, value))

def parse_int(key, value):
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ConfigurationError("Variable '{}' is not an integer: '{}'".format(key, value))

def normalize_zone_id(zone_id):
    """Strip the '/hostedzone/' prefix Route53 returns for zone ids"""
    if zone_id is None:
        return None
    return zone_id.split('/')[-1]

def load_config_file(path):
    """Load configuration values from a YAML file

    Args:
        path (str): Path to the YAML file

    Returns:
        dict: Configuration values, with the keys upper cased

    Raises:
        ConfigurationError: If the file doesn't exist or doesn't contain a mapping
    """
    if not os.path.exists(path):
        raise ConfigurationError("Config file '{}' doesn't exist".format(path))

    try:
        with open(path, 'r') as fh:
            config = yaml.full_load(fh.read())
    except yaml.YAMLError as ex:
        raise ConfigurationError("Problem loading config file '{}': {}".format(path, ex))

    if config is None:
        return {}
    if not isinstance(config, dict):
        raise ConfigurationError("Config file '{}' is not a mapping".format(path))

    return {str(k).upper(): v for k, v in config.items()}

class DnsConfiguration(object):
    __EXPECTED_KEYS = [
        'FLAVOR',
        'REGION', # Optional, from the event if not given
        'DOMAIN', # Optional, from the ASG tags if not given
        'ZONE_ID', # Optional, from the ASG tags if not given
        'ALLOW_EMPTY_MEMBERSHIP', # Optional, from the flavor
        'DETECT_DELETIONS', # Optional, from the flavor
        'TTL',
        'ROLE_TAG',
        'DOMAIN_TAG',
        'ZONE_ID_TAG',
        'LOG_LEVEL',
    ]

    __DEFAULTS = {
        'FLAVOR': 'eventbridge',
        'REGION': None,
        'DOMAIN': None,
        'ZONE_ID': None,
        'TTL': const.TTL_SECONDS,
        'ROLE_TAG': const.ROLE_TAG,
        'DOMAIN_TAG': const.ROUTE53_DOMAIN_NAME_TAG,
        'ZONE_ID_TAG': const.ROUTE53_ZONE_ID_TAG,
        'LOG_LEVEL': 'INFO',
    }

    __BOOLEANS = ('ALLOW_EMPTY_MEMBERSHIP', 'DETECT_DELETIONS')
    __INTEGERS = ('TTL',)

    def __init__(self, values=None, **kwargs):
        self._config = {}

        values = dict(values or {})
        values.update(kwargs)
        for key, value in values.items():
            if key not in self.__EXPECTED_KEYS:
                LOGGER.warning("Extra variable '{}' defined".format(key))
                continue

            if value is None:
                continue
            elif isinstance(value, str) and len(value.strip()) == 0:
                continue # empty environment variable
            elif key in self.__BOOLEANS:
                value = parse_bool(key, value)
            elif key in self.__INTEGERS:
                value = parse_int(key, value)
            self._config[key] = value

        self.verify()

    @classmethod
    def keys(cls):
        return list(cls.__EXPECTED_KEYS)

    def __getattr__(self, attr):
        if attr.startswith('_'):
            raise AttributeError(attr)

        if attr in self._config:
            return self._config[attr]

        flavor = self._config.get('FLAVOR', self.__DEFAULTS['FLAVOR'])
        if attr in FLAVORS.get(flavor, {}):
            return FLAVORS[flavor][attr]
        elif attr in self.__DEFAULTS:
            return self.__DEFAULTS[attr]
        else:
            msg = "'{}' object has not attribute '{}'".format(self.__class__.__name__,
                                                              attr)
            raise AttributeError(msg)

    def get(self, key, default=None):
        try:
            return self.__getattr__(key)
        except AttributeError:
            return default

    def __repr__(self):
        return "DnsConfiguration('{}')".format(self.FLAVOR)

    def verify(self):
        if self.FLAVOR not in FLAVORS:
            raise ConfigurationError("Unknown flavor '{}'".format(self.FLAVOR))

        for key in FLAVOR_REQUIRED_KEYS.get(self.FLAVOR, []):
            if self.get(key) is None:
                msg = "Variable '{}' is required by the '{}' flavor".format(key, self.FLAVOR)
                raise ConfigurationError(msg)

        if self.TTL <= 0:
            raise ConfigurationError("TTL must be positive, not {}".format(self.TTL))

        if not isinstance(logging.getLevelName(str(self.LOG_LEVEL).upper()), int):
            raise ConfigurationError("Unknown LOG_LEVEL '{}'".format(self.LOG_LEVEL))

    def display(self, fh = sys.stdout):
        for key in self.__EXPECTED_KEYS:
            val = pformat(self.__getattr__(key))
            print("{} = {}".format(key, val), file=fh)

    def to_policy(self):
        return ReconciliationPolicy(
            allow_empty_membership = self.ALLOW_EMPTY_MEMBERSHIP,
            detect_deletions = self.DETECT_DELETIONS,
            region = self.REGION,
            domain = self.DOMAIN,
            zone_id = normalize_zone_id(self.ZONE_ID),
            ttl = self.TTL,
            role_tag = self.ROLE_TAG,
            domain_tag = self.DOMAIN_TAG,
            zone_id_tag = self.ZONE_ID_TAG,
        )

def load_configuration(path=None, environ=None, **overrides):
    """Build the configuration from the config file, the environment and the
    given overrides

    Args:
        path (optional[str]): YAML config file, defaults to $ASG_DNS_CONFIG
        environ (optional[dict]): Environment variables, defaults to os.environ
        overrides (dict): Values that take precedence over everything else,
                          None values are ignored

    Returns:
        DnsConfiguration
    """
    if environ is None:
        environ = os.environ

    values = {}

    if path is None:
        path = environ.get(CONFIG_ENV)
    if path:
        values.update(load_config_file(path))

    for key in DnsConfiguration.keys():
        if ENV_PREFIX + key in environ:
            values[key] = environ[ENV_PREFIX + key]

    values.update({k: v for k, v in overrides.items() if v is not None})

    return DnsConfiguration(values)

class DnsParser(ArgumentParser):
    """Argument parser that adds the common configuration arguments and builds
    the DnsConfiguration when parsing
    """

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)

        self.add_argument("--config", "-c",
                          metavar = "FILE",
                          default = None,
                          help = "YAML configuration file (default: ${})".format(CONFIG_ENV))
        self.add_argument("--flavor", "-f",
                          choices = sorted(FLAVORS.keys()),
                          default = None,
                          help = "Reconciliation flavor")
        self.add_argument("--region", "-r",
                          default = None,
                          help = "AWS region of the autoscaling group")

    def parse_args(self, *args, **kwargs):
        """Calls the underlying 'parse_args()' method and then builds the
        DnsConfiguration, stored as 'dns_config' on the returned object.

        Exits with a usage message if the configuration is not valid.
        """
        a = super().parse_args(*args, **kwargs)

        try:
            a.dns_config = load_configuration(a.config,
                                              FLAVOR = a.flavor,
                                              REGION = a.region)
        except ConfigurationError as ex:
            self.error(str(ex))

        return a
