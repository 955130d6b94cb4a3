"""Packer build variables for the runner image template."""

import json
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional


def _hcl_string(value: str) -> str:
    # HCL string literals share JSON's escaping rules
    return json.dumps(value)


@dataclass
class PackerVariables:
    """Variables handed to ``packer build`` with ``-var``.

    ``None`` values are left out so the template defaults apply.
    """
    region: str
    instance_type: Optional[str] = None
    spot_price: Optional[str] = None
    ami_name_prefix: Optional[str] = None
    subnet_id: Optional[str] = None
    security_group_id: Optional[str] = None
    iam_instance_profile: Optional[str] = None
    image_version: Optional[str] = None
    tags: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {k: v for k, v in asdict(self).items() if v not in (None, {}, "")}

    def to_var_args(self) -> List[str]:
        args: List[str] = []
        for key, value in self.to_dict().items():
            if key == "tags":
                pairs = ", ".join(
                    f"{_hcl_string(k)} = {_hcl_string(str(v))}" for k, v in value.items()
                )
                rendered = "{" + pairs + "}"
            else:
                rendered = str(value)
            args.extend(["-var", f"{key}={rendered}"])
        return args

    def merged(self, **overrides: Any) -> "PackerVariables":
        """Copy with non-empty overrides applied; tags are merged."""
        data = asdict(self)
        for key, value in overrides.items():
            if value in (None, ""):
                continue
            if key == "tags":
                data["tags"] = {**data["tags"], **value}
            else:
                data[key] = value
        return PackerVariables(**data)

    @classmethod
    def from_config(cls, region: str, values: Dict[str, Any]) -> "PackerVariables":
        known = {f for f in cls.__dataclass_fields__ if f != "region"}
        kwargs = {k: v for k, v in (values or {}).items() if k in known}
        if "spot_price" in kwargs and kwargs["spot_price"] is not None:
            kwargs["spot_price"] = str(kwargs["spot_price"])
        return cls(region=region, **kwargs)
