# SPDX-FileCopyrightText: 2022 - 2023 Peter Urban, Ghent University
#
# SPDX-License-Identifier: MPL-2.0

def assert_length(function_name, base_vector, compare_vectors):
    for vec in compare_vectors:
        assert len(vec) == len(base_vector), f"ERROR[{function_name}]: error size mismatch! {len(vec)} != {len(base_vector)}"


def assert_valid_argument(function_name, arg, valid_args):
    assert arg in valid_args, f"ERROR[{function_name}]: unknown value '{arg}', use any of '{valid_args}'"


def assert_in_range(function_name, value, vmin, vmax):
    assert vmin <= value <= vmax, f"ERROR[{function_name}]: value {value} outside of [{vmin}, {vmax}]"
