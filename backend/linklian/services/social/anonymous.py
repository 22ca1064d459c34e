# backend/linklian/services/social/anonymous.py


def generate_anonymous_name(user_sys_id: int, section_id: int) -> str:
    """
    Stable pseudonym for a user inside one section.

    The same user gets the same name everywhere in a section and, in
    general, a different one in another section.
    """
    number = (user_sys_id * 31 + section_id * 17) % 10000
    return f"Anonymous User {number:04d}"
