"""
Shared module to hold constant values for the library
"""

# Path to the label holding the application name used to group related objects
APP_LABEL_PATH = "metadata.labels.app"

# Fallback path for objects (e.g. PodDisruptionBudget) that only carry the app
# label in their selector
APP_SELECTOR_LABEL_PATH = "spec.selector.matchLabels.app"

# Suffix the API server uses for list kinds
KUBE_LIST_SUFFIX = "List"

# Delimiter used for nested dict keys
NESTED_DICT_DELIM = "."

# Delimiter between group and version in an apiVersion string
API_VERSION_DELIM = "/"

# Namespace phase reported while a namespace is being deleted
NAMESPACE_TERMINATING_PHASE = "Terminating"

# Kind of namespace objects
NAMESPACE_KIND = "Namespace"
