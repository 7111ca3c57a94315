"""
JQL Validator for Jira Query Language

Validates inputs before they are placed into JQL queries or REST paths.
The search endpoint takes JQL as a single string with no parameter binding,
so every interpolated value is checked against a strict whitelist pattern.

Security Note:
    Never interpolate issue keys into JQL without validation.
    Always use JQLValidator.build_safe_jql() or validate inputs individually.
"""

import re

from .validation import ValidationError


class JQLValidator:
    """
    Validates and sanitizes inputs for Jira JQL queries and issue REST paths.

    Example:
        >>> JQLValidator.validate_issue_key("PROJ-42")
        'PROJ-42'
        >>> JQLValidator.build_safe_jql('parent = "{issue_key}"', issue_key="PROJ-1")
        'parent = "PROJ-1"'
    """

    # Project key (uppercase letter, then letters/digits/underscore) + numeric id
    ISSUE_KEY_PATTERN = re.compile(r"^[A-Z][A-Z0-9_]+-\d+$")

    # System fields (summary, status) and custom fields (customfield_10016, story_points)
    FIELD_NAME_PATTERN = re.compile(r"^[a-zA-Z][a-zA-Z0-9_]*$")

    # Issue property keys: letters, digits, dot, hyphen, underscore
    PROPERTY_KEY_PATTERN = re.compile(r"^[a-zA-Z0-9._\-]+$")

    MAX_ISSUE_KEY_LENGTH = 64
    MAX_FIELD_NAME_LENGTH = 128
    MAX_PROPERTY_KEY_LENGTH = 255

    @staticmethod
    def validate_issue_key(issue_key: str) -> str:
        """
        Validate a Jira issue key.

        Args:
            issue_key: User- or event-supplied issue key

        Returns:
            Validated issue key (unchanged if valid)

        Raises:
            ValidationError: If the key is empty, too long or not of the form PROJ-123

        Example:
            >>> JQLValidator.validate_issue_key('PROJ-1" OR project = SECRET')
            ValidationError: Invalid issue key
        """
        if not issue_key:
            raise ValidationError("Issue key cannot be empty")

        if not isinstance(issue_key, str):
            raise ValidationError(f"Issue key must be string, got {type(issue_key)}")

        if len(issue_key) > JQLValidator.MAX_ISSUE_KEY_LENGTH:
            raise ValidationError(f"Issue key too long: {len(issue_key)} chars (max {JQLValidator.MAX_ISSUE_KEY_LENGTH})")

        if not JQLValidator.ISSUE_KEY_PATTERN.fullmatch(issue_key):
            raise ValidationError(f"Invalid issue key: '{issue_key}'. Expected format PROJ-123")

        return issue_key

    @staticmethod
    def validate_field_name(field_name: str) -> str:
        """
        Validate a field name requested from the search endpoint.

        Args:
            field_name: Field name (e.g. 'summary', 'customfield_10016')

        Returns:
            Validated field name

        Raises:
            ValidationError: If the field name contains anything but letters, digits and underscores
        """
        if not field_name or not isinstance(field_name, str):
            raise ValidationError("Field name cannot be empty")

        if len(field_name) > JQLValidator.MAX_FIELD_NAME_LENGTH:
            raise ValidationError(f"Field name too long: {len(field_name)} chars (max {JQLValidator.MAX_FIELD_NAME_LENGTH})")

        if not JQLValidator.FIELD_NAME_PATTERN.fullmatch(field_name):
            raise ValidationError(
                f"Invalid field name: '{field_name}'. Only letters, numbers and underscores allowed."
            )

        return field_name

    @staticmethod
    def validate_property_key(property_key: str) -> str:
        """
        Validate an issue property key used in a REST path.

        Args:
            property_key: Property key (e.g. 'isurollup')

        Returns:
            Validated property key

        Raises:
            ValidationError: If the key is empty, too long or contains path characters
        """
        if not property_key or not isinstance(property_key, str):
            raise ValidationError("Property key cannot be empty")

        if len(property_key) > JQLValidator.MAX_PROPERTY_KEY_LENGTH:
            raise ValidationError(
                f"Property key too long: {len(property_key)} chars (max {JQLValidator.MAX_PROPERTY_KEY_LENGTH})"
            )

        if not JQLValidator.PROPERTY_KEY_PATTERN.fullmatch(property_key):
            raise ValidationError(
                f"Invalid property key: '{property_key}'. "
                f"Only letters, numbers, periods, hyphens and underscores allowed."
            )

        return property_key

    @staticmethod
    def build_safe_jql(template: str, **params: str) -> str:
        """
        Build a JQL query with validated parameters.

        Parameters whose name contains "key" are validated as issue keys and
        those containing "field" as field names. Anything else must be free of
        quotes, backslashes and semicolons.

        Args:
            template: JQL template with {parameter} placeholders
            **params: Named parameters to insert into template

        Returns:
            Complete JQL query

        Raises:
            ValidationError: If any parameter fails validation or is missing

        Example:
            >>> JQLValidator.build_safe_jql('parent = "{issue_key}" ORDER BY created ASC', issue_key="PROJ-1")
            'parent = "PROJ-1" ORDER BY created ASC'
        """
        validated_params = {}

        for name, value in params.items():
            name_lower = name.lower()

            if "key" in name_lower:
                validated_params[name] = JQLValidator.validate_issue_key(value)

            elif "field" in name_lower:
                validated_params[name] = JQLValidator.validate_field_name(value)

            else:
                if not isinstance(value, str):
                    value = str(value)

                if len(value) > 256:
                    raise ValidationError(f"Parameter '{name}' too long (max 256 chars)")

                if "'" in value or '"' in value or "\\" in value:
                    raise ValidationError(f"Parameter '{name}' contains quotes or backslashes")
                if ";" in value:
                    raise ValidationError(f"Parameter '{name}' contains semicolon")

                validated_params[name] = value

        try:
            return template.format(**validated_params)
        except KeyError as e:
            raise ValidationError(f"Missing required parameter: {e}")
