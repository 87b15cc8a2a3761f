from sankey_layout.cli import main

raise SystemExit(main())
