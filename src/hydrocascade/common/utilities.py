import logging

def normalize_string(name:str) -> str:
    """
    Normalizes a string for case-insensitive comparison.

    Removes spaces, hyphens, and underscores, then converts to lowercase, so that
    plant kinds written as "Run-of-River", "run_of_river" or "RunOfRiver" all match.

    Args:
        name (str): The string to normalize.

    Returns:
        str: Normalized string.

    Examples:
        >>> normalize_string("Run-of-River")
        'runofriver'
    """
    return name.replace(' ', '').replace('-', '').replace('_', '').lower()

def compare_lists(list1, list2, text_comp='', list_names=['','']):
    """
    Compares two lists for length and element equality, logging warnings for differences.

    Used to check that related inputs refer to the same plants (e.g. the columns of
    an inflow table and the ids of the hydro plant registry).

    Args:
        list1 (list): First list to compare.
        list2 (list): Second list to compare.
        text_comp (str, optional): Description of what's being compared (for logging).
            Defaults to ''.
        list_names (list, optional): Names of the two lists [name1, name2] for logging.
            Defaults to ['', ''].

    Returns:
        bool: True if lists have same length and elements, False otherwise.

    Examples:
        >>> compare_lists(['H001', 'H002'], ['H001'], 'hydro plants', ['Inflows', 'Plants'])
        False  # Logs warning about length difference
    """
    if len(list1) != len(list2):
        logging.warning(f"Lists {text_comp} have different lengths ({list_names[0]} vs {list_names[1]}): {len(list1)} vs {len(list2)}")
        return False
    if set(list1) != set(list2):
        logging.warning(f"Lists {text_comp} have different elements ({list_names[0]} vs {list_names[1]}): {set(list1)} vs {set(list2)}")
        return False
    return True
