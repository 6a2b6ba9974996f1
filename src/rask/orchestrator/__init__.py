"""Task selection and leveled execution across a configuration tree."""
