"""
Static reference tables used as configuration defaults.

Loaded once at import time and never mutated. Settings may override any of
them through the environment (see jobcrawl.core.config).
"""
from typing import Tuple


# "" means "no location filter" and is a valid search location.
COUNTRIES: Tuple[str, ...] = (
    '',
    'Spain',
    'France',
    'Germany',
    'Deutschland',
    'Belgium',
    'Italy',
    'United kingdom',
    'Scotland',
    'Ireland',

    'China',
    'India',
    'Japan',

    'United States',
    'Canada',

    'Denmark',
    'Norway',
    'Sweden',
    'Finland',

    'Russia',
    'Estonia',
    'Grece',
    'Romania',
    'Switzerland',
)

TECHNOLOGIES: Tuple[str, ...] = (
    'Angular',
    'React',
    'Vue',
    'Javascript',
    'Typescript',
    'Python',
    'C++',
    'Django',
    'Ruby on rails',
    'Svelte',
    'Wordpress',
    'Ionic',
    'Solidity',
    'Laravel',
    'Stencil',
    'Frontend',
    'Backend',
    'Full stack',
    'Systems Engineer',
)

# Lowercase single-word tokens matched against title words and URL slug parts.
TAG_VOCABULARY: Tuple[str, ...] = (
    'angular',
    'angularjs',
    'react',
    'reactjs',
    'vue',
    'vuejs',
    'svelte',
    'javascript',
    'typescript',
    'node',
    'nodejs',
    'python',
    'django',
    'flask',
    'fastapi',
    'ruby',
    'rails',
    'php',
    'laravel',
    'wordpress',
    'java',
    'kotlin',
    'scala',
    'golang',
    'go',
    'rust',
    'c++',
    'c#',
    '.net',
    'swift',
    'ionic',
    'flutter',
    'solidity',
    'stencil',
    'frontend',
    'backend',
    'fullstack',
    'devops',
    'aws',
    'azure',
    'gcp',
    'docker',
    'kubernetes',
    'sql',
    'postgresql',
    'mysql',
    'mongodb',
    'graphql',
)
