#!/usr/bin/env python3
from __future__ import annotations
import argparse, os, sys
from typing import List, Optional
import cv2
import numpy as np

from docscan.core.contracts import ScanError
from docscan.geometry.detect import load_cfg, merge_cfg
from docscan.io.ingest import decode_image, save_image
from docscan.pipeline import scan


def draw_quad(img: np.ndarray, quad: np.ndarray, color, thickness: int = 2) -> None:
    q = np.round(quad).astype(np.int32).reshape(4, 2)
    cv2.polylines(img, [q], True, color, thickness, lineType=cv2.LINE_AA)


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="docscan", description="Detect a document in a photo and flatten it to a PNG.")
    ap.add_argument("image", help="Path to input image (PNG/JPEG).")
    ap.add_argument("--out_dir", default="output", help="Directory for outputs.")
    ap.add_argument("--out", default=None, help="Rectified PNG path. Default: <out_dir>/<image_basename>_scan.png")
    ap.add_argument("--viz", default=None, help="Also write the input with the quad drawn on it to this path.")
    ap.add_argument("--corners", type=float, nargs=8, metavar=("TLX", "TLY", "TRX", "TRY", "BRX", "BRY", "BLX", "BLY"),
                    help="Skip detection and use these corners (TL, TR, BR, BL).")
    ap.add_argument("--width", type=int, default=None, help="Output width (default: longest top/bottom edge).")
    ap.add_argument("--height", type=int, default=None, help="Output height (default: longest left/right edge).")
    ap.add_argument("--enhance", action="store_true", help="Boost contrast of the flattened page.")
    ap.add_argument("--config", default=None, help="YAML config overriding the detector defaults.")
    ap.add_argument("--debug", action="store_true", help="Enable debug prints in detector.")
    return ap


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        cfg = load_cfg(args.config) if args.config else merge_cfg(None)
        if args.debug:
            cfg["debug"] = True

        with open(args.image, "rb") as f:
            data = f.read()

        corners = np.asarray(args.corners, np.float32).reshape(4, 2) if args.corners else None
        result = scan(data, corners=corners, width=args.width, height=args.height,
                      enhance=args.enhance, cfg=cfg)

        os.makedirs(args.out_dir, exist_ok=True)
        base = os.path.splitext(os.path.basename(args.image))[0]
        out_path = args.out or os.path.join(args.out_dir, f"{base}_scan.png")
        save_image(out_path, result.image)
        W, H = result.size
        print(f"Corners ({result.source}): {result.corners.as_tuple()}")
        print(f"Saved rectified {W}x{H} → {out_path}")

        if args.viz:
            vis = np.ascontiguousarray(decode_image(data))
            draw_quad(vis, result.corners.pts, (0, 255, 0, 255), 3)
            save_image(args.viz, vis)
            print(f"Saved visualization → {args.viz}")
    except (ScanError, OSError, ValueError) as e:
        print(f"docscan: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
